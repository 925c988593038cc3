"""Recording test doubles for stages and the LLM client."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from winston.llm.client import LLMRequest
from winston.models import Language, StageName
from winston.stages.base import Stage

CallLog = List[Tuple[str, str, str]]


class RecordingStage(Stage):
    """Writes one marker artifact and records every call in a shared log."""

    def __init__(
        self,
        name: StageName,
        language: Language,
        calls: CallLog,
        *,
        fail_on: Optional[Callable[[Path], bool]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        self.name = name
        self.language = language
        self.calls = calls
        self.fail_on = fail_on
        self.error = error or RuntimeError(f"{name.value} exploded")

    def run(self, path: Path, output_dir: Path) -> List[Path]:
        self.calls.append((self.language.value, Path(path).name, self.name.value))
        if self.fail_on is not None and self.fail_on(Path(path)):
            raise self.error
        return [self.write_artifact(output_dir, f"{Path(path).name}.{self.name.value}.txt", "ok\n")]


def recording_stages(
    calls: CallLog,
    *,
    fail_on: Optional[Callable[[Path], bool]] = None,
    failing_stage: StageName | None = None,
    error: Optional[BaseException] = None,
) -> Dict[Language, Dict[StageName, Stage]]:
    table: Dict[Language, Dict[StageName, Stage]] = {}
    for language in Language:
        table[language] = {}
        for name in StageName:
            should_fail = fail_on if failing_stage in (None, name) else None
            table[language][name] = RecordingStage(name, language, calls, fail_on=should_fail, error=error)
    return table


class ScriptedRunner:
    """LLM runner returning queued responses and recording each request."""

    def __init__(self, *responses: str) -> None:
        self.responses = list(responses)
        self.requests: List[LLMRequest] = []

    def __call__(self, request: LLMRequest) -> str:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("No scripted response left")
        return self.responses.pop(0)


__all__ = ["CallLog", "RecordingStage", "ScriptedRunner", "recording_stages"]
