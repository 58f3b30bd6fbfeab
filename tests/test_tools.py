"""Tests for the chat tools."""

from __future__ import annotations

import json
import re
import time
from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import httpx
import pytest

from rag_chat import tools
from rag_chat.tools import (
    GET_CURRENT_TIME,
    GET_CURRENT_TIMESTAMP,
    GET_WEATHER,
    ChatTool,
    ToolError,
    current_time,
    get_tools,
    tool_definitions,
    tool_map,
)

if TYPE_CHECKING:
    from collections.abc import Callable

WEATHER_PAYLOAD = {
    "city": "北京",
    "weather": "晴",
    "weather_code": 0,
    "temperature": 21,
    "humidity": 40,
    "wind_direction": "北风",
    "wind_power": "3",
    "report_time": "2025-05-01 10:00:00",
}


def _mock_httpx(handler: Callable[[httpx.Request], httpx.Response]) -> Any:
    real_client = httpx.AsyncClient

    def factory(**kwargs: Any) -> httpx.AsyncClient:
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    return patch("rag_chat.tools.httpx.AsyncClient", factory)


def test_registry() -> None:
    """The closed tool set is indexed by name."""
    names = [tool.name for tool in get_tools()]
    assert names == ["get_current_time", "get_current_timestamp", "get_weather"]
    assert tool_map(get_tools())["get_weather"] is GET_WEATHER


def test_tool_definitions() -> None:
    """Definitions carry the JSON schema for the model."""
    definitions = {d.name: d for d in tool_definitions(get_tools())}
    weather = definitions["get_weather"]
    assert weather.parameters_json_schema["required"] == ["location"]
    assert definitions["get_current_time"].parameters_json_schema["properties"] == {}


def test_current_time_format() -> None:
    """Time is formatted as date and seconds."""
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", current_time())


@pytest.mark.asyncio
async def test_time_tools() -> None:
    """Time tools return text results."""
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", await GET_CURRENT_TIME.invoke())
    stamp = int(await GET_CURRENT_TIMESTAMP.invoke({}))
    assert abs(stamp - time.time() * 1000) < 5000


@pytest.mark.asyncio
async def test_invoke_wraps_unexpected_errors() -> None:
    """Any handler failure surfaces as a tool error."""

    async def explode() -> str:
        msg = "bad state"
        raise KeyError(msg)

    tool = ChatTool(name="explode", description="", handler=explode)
    with pytest.raises(ToolError, match="bad state"):
        await tool.invoke()


@pytest.mark.asyncio
async def test_invoke_rejects_unknown_arguments() -> None:
    """Unexpected arguments are a tool error."""
    with pytest.raises(ToolError):
        await GET_CURRENT_TIME.invoke({"zone": "UTC"})


@pytest.mark.asyncio
async def test_weather() -> None:
    """The weather API response is reshaped into a JSON summary."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=WEATHER_PAYLOAD)

    with _mock_httpx(handler):
        result = json.loads(await GET_WEATHER.invoke({"location": "北京"}))

    assert seen[0].url.params["city"] == "北京"
    assert result["location"] == "北京"
    assert result["weather"] == "晴"
    assert result["temperature"] == "21°C"
    assert result["humidity"] == "40%"
    assert result["wind_speed"] == "3 km/h"
    assert result["updated_at"] == "2025-05-01 10:00:00"


@pytest.mark.asyncio
async def test_weather_api_error_message() -> None:
    """The API's error message is passed on."""

    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "城市不存在"})

    with _mock_httpx(handler), pytest.raises(ToolError, match="城市不存在"):
        await GET_WEATHER.invoke({"location": "Atlantis"})


@pytest.mark.asyncio
async def test_weather_timeout() -> None:
    """Timeouts are reported plainly."""

    def handler(request: httpx.Request) -> httpx.Response:
        msg = "timed out"
        raise httpx.ReadTimeout(msg, request=request)

    with _mock_httpx(handler), pytest.raises(ToolError, match="请求超时"):
        await GET_WEATHER.invoke({"location": "北京"})


@pytest.mark.asyncio
async def test_weather_network_error() -> None:
    """Connection failures are reported plainly."""

    def handler(request: httpx.Request) -> httpx.Response:
        msg = "refused"
        raise httpx.ConnectError(msg, request=request)

    with _mock_httpx(handler), pytest.raises(ToolError, match="网络连接错误"):
        await GET_WEATHER.invoke({"location": "北京"})


@pytest.mark.asyncio
async def test_weather_unexpected_payload() -> None:
    """A response without the expected fields is rejected."""

    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": 200})

    with _mock_httpx(handler), pytest.raises(ToolError, match="响应数据格式不符合预期"):
        await tools.GET_WEATHER.invoke({"location": "北京"})
