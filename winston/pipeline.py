"""Sequential dispatch of (file, stage) work items."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from .errors import NothingToAnalyzeError
from .logging import get_logger
from .models import FileSet, Language, StageName, StageSelection
from .stages.base import Stage


class FailurePolicy(str, Enum):
    """What the dispatcher does when a stage raises."""

    ABORT = "abort"
    CONTINUE = "continue"


@dataclass(frozen=True)
class WorkItem:
    """One stage applied to one file."""

    path: Path
    language: Language
    stage: StageName


@dataclass
class StageOutcome:
    item: WorkItem
    artifacts: List[Path] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DispatchReport:
    """Everything the dispatcher did, in execution order."""

    outcomes: List[StageOutcome] = field(default_factory=list)

    @property
    def artifacts(self) -> List[Path]:
        paths: List[Path] = []
        for outcome in self.outcomes:
            paths.extend(outcome.artifacts)
        return paths

    @property
    def failures(self) -> List[StageOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def succeeded(self) -> bool:
        return not self.failures


ProgressCallback = Callable[[int, int, WorkItem], None]


class Dispatcher:
    """Runs the selected stages over a file set, one work item at a time.

    Every Solidity file is processed before any Rust file, and each file runs
    its stages in the fixed order diagram, analysis, semgrep, static, explain.
    Under :attr:`FailurePolicy.ABORT` the first exception is re-raised as is
    and no further work item runs.
    """

    def __init__(
        self,
        stages: Mapping[Language, Mapping[StageName, Stage]],
        policy: FailurePolicy = FailurePolicy.ABORT,
        *,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.stages = stages
        self.policy = FailurePolicy(policy)
        self.progress = progress
        self.logger = get_logger("pipeline")

    def plan(self, file_set: FileSet, selection: StageSelection) -> List[WorkItem]:
        """Expand a file set into the ordered list of work items."""
        ordered = selection.ordered()
        items: List[WorkItem] = []
        for language, path in file_set.iter_files():
            for stage in ordered:
                items.append(WorkItem(path=path, language=language, stage=stage))
        return items

    def dispatch(self, file_set: FileSet, selection: StageSelection, output_dir: Path) -> DispatchReport:
        if file_set.is_empty:
            raise NothingToAnalyzeError("No Solidity or Rust files found to analyze")

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        items = self.plan(file_set, selection)
        report = DispatchReport()
        self.logger.info(
            "Dispatching %d work item(s) over %d file(s) with policy '%s'",
            len(items),
            file_set.total,
            self.policy.value,
        )

        for index, item in enumerate(items, start=1):
            if self.progress is not None:
                self.progress(index, len(items), item)
            stage = self._stage_for(item)
            self.logger.info("[%d/%d] %s on %s", index, len(items), item.stage.value, item.path)
            try:
                artifacts = list(stage.run(item.path, output_dir))
            except Exception as exc:
                self.logger.error("Stage '%s' failed for %s: %s", item.stage.value, item.path, exc)
                if self.policy is FailurePolicy.ABORT:
                    raise
                report.outcomes.append(StageOutcome(item=item, error=exc))
                continue
            report.outcomes.append(StageOutcome(item=item, artifacts=artifacts))

        if report.failures:
            self.logger.warning("%d of %d work item(s) failed", len(report.failures), len(items))
        return report

    def _stage_for(self, item: WorkItem) -> Stage:
        by_name: Dict[StageName, Stage] = dict(self.stages.get(item.language, {}))
        try:
            return by_name[item.stage]
        except KeyError:
            raise KeyError(
                f"No '{item.stage.value}' stage registered for {item.language.label}"
            ) from None


__all__ = [
    "DispatchReport",
    "Dispatcher",
    "FailurePolicy",
    "StageOutcome",
    "WorkItem",
]
