"""Run orchestration: classify, fetch, discover and dispatch one input reference."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional

from .classifier import InputClassifier
from .config import WinstonConfig
from .discovery import FileDiscovery
from .errors import NothingToAnalyzeError
from .fetch import Cloner, Downloader
from .llm.client import LLMClient
from .logging import get_logger
from .models import (
    Classification,
    FileSet,
    InputKind,
    Language,
    ResolvedSource,
    StageName,
    StageSelection,
)
from .pipeline import Dispatcher, DispatchReport, FailurePolicy
from .stages import build_stages
from .stages.base import Stage


class RunState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    FETCHING = "fetching"
    DISCOVERING = "discovering"
    DISPATCHING = "dispatching"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(frozen=True)
class AuditRequest:
    """A single invocation: the raw input plus the caller's flags."""

    input: str
    force_git: bool = False
    selection: StageSelection = field(default_factory=StageSelection.all)
    output_dir: Optional[Path] = None
    rust_only: bool = False


@dataclass
class AuditOutcome:
    """Result of a completed run."""

    source: ResolvedSource
    file_set: FileSet
    output_dir: Path
    report: DispatchReport

    @property
    def artifacts(self) -> List[Path]:
        return self.report.artifacts

    @property
    def succeeded(self) -> bool:
        return self.report.succeeded


class Auditor:
    """Coordinates an audit run from a raw input string to written artifacts.

    The run moves through ``IDLE -> CLASSIFYING -> [FETCHING] -> DISCOVERING
    -> DISPATCHING -> DONE``; any exception moves it to ``ABORTED`` and is
    re-raised unchanged. Nothing is resumed: a new run starts from scratch.
    """

    def __init__(
        self,
        config: WinstonConfig | None = None,
        *,
        classifier: InputClassifier | None = None,
        cloner: Cloner | None = None,
        downloader: Downloader | None = None,
        discovery: FileDiscovery | None = None,
        stages: Optional[Mapping[Language, Mapping[StageName, Stage]]] = None,
        llm_client: LLMClient | None = None,
        policy: FailurePolicy | None = None,
    ) -> None:
        self.config = config
        workdir = config.workdir if config is not None else Path("temp_repos")
        self.classifier = classifier or InputClassifier()
        self.cloner = cloner or Cloner(workdir)
        self.downloader = downloader or Downloader(workdir)
        self.discovery = discovery or FileDiscovery()
        if stages is None:
            client = llm_client or LLMClient(config.llm if config is not None else None)
            stages = build_stages(client)
        self.stages = stages
        if policy is None:
            policy = FailurePolicy(config.failure_policy) if config is not None else FailurePolicy.ABORT
        self.policy = policy
        self.logger = get_logger("auditor")
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    def run(self, request: AuditRequest) -> AuditOutcome:
        """Execute one audit run for ``request``."""
        self._state = RunState.IDLE
        output_dir = self._resolve_output_dir(request)
        try:
            self._transition(RunState.CLASSIFYING)
            classification = self.classifier.classify(request.input, force_git=request.force_git)
            self.logger.debug("Classified %s as %s", request.input, classification.kind.value)

            source = self._resolve(classification)
            file_set = self._collect(source)
            if request.rust_only:
                self.logger.info("Rust-only mode: skipping %d Solidity file(s)", len(file_set.solidity_files))
                file_set = file_set.only(Language.RUST)

            if file_set.is_empty:
                raise NothingToAnalyzeError(
                    f"No {'Rust' if request.rust_only else 'Solidity or Rust'} files found in {request.input}"
                )

            self.logger.info(
                "Found %d Solidity file(s) and %d Rust file(s)",
                len(file_set.solidity_files),
                len(file_set.rust_files),
            )
            self._transition(RunState.DISPATCHING)
            dispatcher = Dispatcher(self.stages, self.policy)
            report = dispatcher.dispatch(file_set, request.selection, output_dir)
        except Exception:
            self._transition(RunState.ABORTED)
            raise

        self._transition(RunState.DONE)
        self.logger.info("Results saved to: %s", output_dir)
        return AuditOutcome(source=source, file_set=file_set, output_dir=output_dir, report=report)

    # ------------------------------------------------------------------
    # Helpers

    def _resolve(self, classification: Classification) -> ResolvedSource:
        kind = classification.kind
        if kind is InputKind.GIT_REPOSITORY:
            self._transition(RunState.FETCHING)
            path = self.cloner.clone(classification.target)
            return ResolvedSource(kind=kind, path=path)

        if kind is InputKind.DOWNLOAD:
            self._transition(RunState.FETCHING)
            path = self.downloader.download(classification.target)
            language = Language.from_path(path.name)
            if language is None:
                reason = f"Downloaded file {path.name} is not a Solidity or Rust source"
                self.logger.warning("%s", reason)
                return ResolvedSource(kind=InputKind.UNRESOLVED, path=path, reason=reason)
            return ResolvedSource(kind=InputKind.SINGLE_FILE, path=path, language=language)

        if kind is InputKind.SINGLE_FILE:
            path = Path(classification.target).expanduser().resolve()
            return ResolvedSource(kind=kind, path=path, language=classification.language)

        if kind is InputKind.DIRECTORY:
            return ResolvedSource(kind=kind, path=Path(classification.target).expanduser().resolve())

        reason = f"Input {classification.target} is not a file, directory or URL winston can analyze"
        self.logger.warning("%s", reason)
        return ResolvedSource(kind=InputKind.UNRESOLVED, reason=reason)

    def _collect(self, source: ResolvedSource) -> FileSet:
        if source.kind is InputKind.SINGLE_FILE and source.path is not None and source.language is not None:
            return FileSet.single(source.path, source.language)
        if source.kind in (InputKind.DIRECTORY, InputKind.GIT_REPOSITORY) and source.path is not None:
            self._transition(RunState.DISCOVERING)
            return self.discovery.discover(source.path)
        return FileSet()

    def _resolve_output_dir(self, request: AuditRequest) -> Path:
        if request.output_dir is not None:
            return Path(request.output_dir).expanduser().resolve()
        if self.config is not None:
            return self.config.output_dir
        return Path("output").resolve()

    def _transition(self, state: RunState) -> None:
        self.logger.info("Run state %s -> %s", self._state.value, state.value)
        self._state = state


__all__ = ["AuditOutcome", "AuditRequest", "Auditor", "RunState"]
