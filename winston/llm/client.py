"""Client for the hosted language model used by the LLM-backed stages."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..config import LLMConfig
from ..errors import LLMError, MissingCredentialError

ANTHROPIC_VERSION = "2023-06-01"


@dataclass
class LLMRequest:
    """Represents a single completion request."""

    prompt: str
    system: Optional[str]
    model: str
    max_tokens: int
    temperature: Optional[float]
    base_url: str
    api_key: str
    request_timeout: Optional[float]


class LLMClient:
    """Sends prompts to the configured model endpoint.

    The client is always constructible. Without an API key every call to
    :meth:`complete` fails with :class:`MissingCredentialError` before any
    network I/O happens.
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        *,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        self.config = config or LLMConfig()
        self._runner = runner or self._http_runner

    @property
    def configured(self) -> bool:
        return self.config.has_credentials

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        """Send the prompt and return the response text."""
        if not self.config.api_key:
            raise MissingCredentialError(
                "No API key configured for the language model. "
                "Set ANTHROPIC_API_KEY or llm.api_key in .winston.yml."
            )
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            base_url=self.config.base_url.rstrip("/"),
            api_key=self.config.api_key,
            request_timeout=self.config.request_timeout,
        )
        return self._runner(request)

    @staticmethod
    def _http_runner(request: LLMRequest) -> str:
        endpoint = f"{request.base_url}/messages"
        payload: dict[str, object] = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.system:
            payload["system"] = request.system
        if request.temperature is not None:
            payload["temperature"] = request.temperature

        headers = {
            "Content-Type": "application/json",
            "x-api-key": request.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        http_request = Request(
            endpoint,
            data=json.dumps(payload).encode("utf-8"),
            headers=headers,
            method="POST",
        )

        try:
            if request.request_timeout is None:
                response = urlopen(http_request)
            else:
                response = urlopen(http_request, timeout=request.request_timeout)
            with response as handle:
                raw = handle.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise LLMError(f"LLM request failed with status {exc.code}: {message}") from exc
        except URLError as exc:
            raise LLMError(f"LLM request failed: {exc.reason}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise LLMError("LLM endpoint returned invalid JSON") from exc

        content = LLMClient._extract_text(response_payload)
        if not content.strip():
            raise LLMError("LLM endpoint returned an empty response")
        return content.strip()

    @staticmethod
    def _extract_text(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        blocks = payload.get("content")
        if not isinstance(blocks, list):
            return ""
        parts = []
        for block in blocks:
            if isinstance(block, dict) and block.get("type", "text") == "text":
                text = block.get("text")
                if isinstance(text, str):
                    parts.append(text)
        return "".join(parts)


__all__ = ["LLMClient", "LLMRequest"]
