"""LLM module."""

from .json_utils import clean_json_response, parse_json_object
from .llm_provider import ILLMProvider, LLMProvider

__all__ = ["ILLMProvider", "LLMProvider", "clean_json_response", "parse_json_object"]
