"""Language-model client adapters."""

from .client import LLMClient, LLMRequest

__all__ = ["LLMClient", "LLMRequest"]
