"""Answer generation: prompt building and streaming text generation."""

from .generator import AnswerGenerator
from .prompts import get_general_prompt, get_web_prompt

__all__ = [
    "AnswerGenerator",
    "get_general_prompt",
    "get_web_prompt",
]
