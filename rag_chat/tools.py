"""Tool definitions for the chat model."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

import httpx
from pydantic_ai.tools import ToolDefinition

from rag_chat import constants

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable


class ToolError(Exception):
    """A tool could not produce a result."""


@dataclass(frozen=True)
class ChatTool:
    """A named capability the model can call with JSON arguments."""

    name: str
    description: str
    handler: Callable[..., Awaitable[str]]
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}},
    )

    async def invoke(self, args: dict[str, Any] | None = None) -> str:
        """Run the tool.

        Raises:
            ToolError: If the tool fails for any reason.

        """
        try:
            return str(await self.handler(**(args or {})))
        except ToolError:
            raise
        except Exception as e:
            raise ToolError(str(e)) from e

    def definition(self) -> ToolDefinition:
        """Describe the tool for a model request."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters_json_schema=self.parameters,
        )


# --- Time ---


def current_time(tz: str = constants.TOOL_TIMEZONE) -> str:
    """Current wall-clock time in ``tz`` as ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.now(ZoneInfo(tz)).strftime("%Y-%m-%d %H:%M:%S")


def current_timestamp() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)


async def _get_current_time() -> str:
    return current_time()


async def _get_current_timestamp() -> str:
    return str(current_timestamp())


# --- Weather ---

_WEATHER_FIELDS = ("city", "weather")


async def _get_weather(location: str) -> str:
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(constants.WEATHER_API_URL, params={"city": location})
            response.raise_for_status()
            data = response.json()
    except httpx.TimeoutException as e:
        msg = "获取天气信息失败: 请求超时"
        raise ToolError(msg) from e
    except httpx.HTTPStatusError as e:
        try:
            detail = e.response.json().get("message") or "API请求失败"
        except ValueError:
            detail = "API请求失败"
        msg = f"获取天气信息失败: {detail}"
        raise ToolError(msg) from e
    except httpx.RequestError as e:
        msg = "获取天气信息失败: 网络连接错误"
        raise ToolError(msg) from e

    if not isinstance(data, dict) or not all(data.get(k) for k in _WEATHER_FIELDS):
        msg = "获取天气信息失败: 响应数据格式不符合预期"
        raise ToolError(msg)

    result = {
        "location": data["city"],
        "timezone": datetime.now().astimezone().tzname() or "",
        "temperature": f"{data.get('temperature')}°C",
        "weather": data["weather"],
        "code": str(data.get("weather_code") or ""),
        "humidity": f"{data.get('humidity')}%",
        "wind_direction": data.get("wind_direction") or "",
        "wind_speed": f"{data.get('wind_power')} km/h",
        "updated_at": data.get("report_time") or "",
    }
    return json.dumps(result, ensure_ascii=False, indent=2)


GET_CURRENT_TIME = ChatTool(
    name="get_current_time",
    description="获取当前的日期和时间（中国时区，格式：YYYY-MM-DD HH:mm:ss）",
    handler=_get_current_time,
)

GET_CURRENT_TIMESTAMP = ChatTool(
    name="get_current_timestamp",
    description="获取当前的时间戳（毫秒）",
    handler=_get_current_timestamp,
)

GET_WEATHER = ChatTool(
    name="get_weather",
    description="获取指定城市的当前天气信息",
    handler=_get_weather,
    parameters={
        "type": "object",
        "properties": {
            "location": {"type": "string", "description": "要查询天气的城市名称"},
        },
        "required": ["location"],
    },
)


def get_tools() -> list[ChatTool]:
    """Return the tools offered to the chat model."""
    return [GET_CURRENT_TIME, GET_CURRENT_TIMESTAMP, GET_WEATHER]


def tool_map(tools: Iterable[ChatTool]) -> dict[str, ChatTool]:
    """Index tools by name."""
    return {tool.name: tool for tool in tools}


def tool_definitions(tools: Iterable[ChatTool]) -> list[ToolDefinition]:
    """Describe tools for a model request."""
    return [tool.definition() for tool in tools]
