"""Prompts for web-grounded and knowledge-only answers."""

from collections.abc import Sequence

from ..retrieval.models import RankedSource

WEB_SYSTEM_PROMPT = "[SYSTEM] You are an AI assistant. Use the following web content to answer the query accurately."

GENERAL_SYSTEM_PROMPT = (
    "[SYSTEM] You are an AI assistant. Answer the query accurately from your own knowledge. "
    "If you are not sure, say so instead of guessing."
)


def format_source(source: RankedSource) -> str:
    """Render one source as a citation tag followed by its text."""
    return f"[Source: {source.url}]\n{source.text}"


def get_web_prompt(query: str, sources: Sequence[RankedSource]) -> str:
    """Generate the prompt for an answer grounded in ranked web sources."""
    context = "\n\n".join(format_source(s) for s in sources)

    return f"""{WEB_SYSTEM_PROMPT}

Question: {query}

Web Context:
{context}

Answer (concise, cite sources):"""


def get_general_prompt(query: str) -> str:
    """Generate the prompt for an answer without any retrieved context."""
    return f"""{GENERAL_SYSTEM_PROMPT}

Question: {query}

Answer (concise):"""
