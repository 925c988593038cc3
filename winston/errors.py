"""Exception hierarchy for winston audit runs."""

from __future__ import annotations

from pathlib import Path


class WinstonError(RuntimeError):
    """Base class for every fatal condition raised during an audit run."""


class FetchError(WinstonError):
    """Raised when a remote input cannot be cloned or downloaded."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class DiscoveryError(WinstonError):
    """Raised when a directory cannot be listed or stat'ed during discovery."""

    def __init__(self, path: Path | str, message: str) -> None:
        super().__init__(message)
        self.path = Path(path)


class StageError(WinstonError):
    """Raised by stage collaborators for their own failures."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


class LLMError(StageError):
    """The language-model backend failed or returned an unusable response."""

    def __init__(self, message: str, *, stage: str = "llm") -> None:
        super().__init__(stage, message)


class MissingCredentialError(LLMError):
    """An LLM-backed stage was invoked without an API key."""


class NothingToAnalyzeError(WinstonError):
    """No Solidity or Rust files were found to analyze."""


__all__ = [
    "DiscoveryError",
    "FetchError",
    "LLMError",
    "MissingCredentialError",
    "NothingToAnalyzeError",
    "StageError",
    "WinstonError",
]
