"""Centralized prompts for retrieval-augmented questions."""

DOCUMENT_SECTION = "[文档 {index}]\n{content}"

RAG_PROMPT_TEMPLATE = """
基于以下检索到的文档内容回答用户的问题。如果文档中没有相关信息，请如实说明。

检索到的文档内容：
{context}

用户问题：{query}

请基于上述文档内容回答问题，并引用相关的文档编号。
""".strip()

RETRIEVAL_STARTED = "正在检索相关文档..."
RETRIEVAL_FINISHED = "检索到 {count} 个相关文档"
RETRIEVAL_CHAIN_FAILED = "检索链执行失败"
