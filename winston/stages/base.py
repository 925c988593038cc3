"""Base classes for analysis stages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from ..errors import LLMError
from ..llm.client import LLMClient
from ..logging import get_logger
from ..models import Language, StageName


class Stage(ABC):
    """Contract shared by every stage: one source file in, artifact paths out."""

    name: StageName
    language: Language

    @abstractmethod
    def run(self, path: Path, output_dir: Path) -> List[Path]:
        """Analyze ``path`` and write artifacts into ``output_dir``."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(language={self.language.value})"

    @staticmethod
    def read_source(path: Path) -> str:
        return Path(path).read_text(encoding="utf-8", errors="replace")

    @staticmethod
    def write_artifact(directory: Path, filename: str, content: str) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / filename
        target.write_text(content, encoding="utf-8")
        return target


class LLMStage(Stage):
    """Stage backed by the language-model client."""

    def __init__(self, client: LLMClient) -> None:
        self.client = client
        self.logger = get_logger(f"stages.{self.name.value}")

    def complete(self, prompt: str, *, system: str | None = None) -> str:
        try:
            return self.client.complete(prompt, system=system)
        except LLMError as exc:
            exc.stage = self.name.value
            raise
