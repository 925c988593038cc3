"""Core data models shared across winston components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Tuple


class Language(str, Enum):
    """Source languages winston knows how to audit."""

    SOLIDITY = "solidity"
    RUST = "rust"

    @property
    def suffix(self) -> str:
        return _SUFFIX_BY_LANGUAGE[self]

    @property
    def label(self) -> str:
        return "Solidity" if self is Language.SOLIDITY else "Rust"

    @classmethod
    def from_path(cls, path: str | Path) -> Optional["Language"]:
        """Return the language implied by the file name suffix, if any."""
        name = str(path)
        for language, suffix in _SUFFIX_BY_LANGUAGE.items():
            if name.endswith(suffix):
                return language
        return None


_SUFFIX_BY_LANGUAGE = {
    Language.SOLIDITY: ".sol",
    Language.RUST: ".rs",
}


class InputKind(str, Enum):
    """Classification outcome for a raw input reference."""

    SINGLE_FILE = "single_file"
    DIRECTORY = "directory"
    GIT_REPOSITORY = "git_repository"
    DOWNLOAD = "download"
    UNRESOLVED = "unresolved"


class StageName(str, Enum):
    """Named analysis stages, declared in execution order."""

    DIAGRAM = "diagram"
    ANALYSIS = "analysis"
    SEMGREP = "semgrep"
    STATIC = "static"
    EXPLAIN = "explain"


STAGE_ORDER: Tuple[StageName, ...] = tuple(StageName)


@dataclass(frozen=True)
class StageSelection:
    """Either every stage (``stages is None``) or an explicit non-empty subset."""

    stages: Optional[FrozenSet[StageName]] = None

    @classmethod
    def all(cls) -> "StageSelection":
        return cls(stages=None)

    @classmethod
    def subset(cls, names: Iterable[StageName | str]) -> "StageSelection":
        selected = frozenset(StageName(name) for name in names)
        if not selected:
            raise ValueError("A stage subset must name at least one stage; use StageSelection.all()")
        return cls(stages=selected)

    @classmethod
    def from_flags(cls, names: Iterable[StageName | str]) -> "StageSelection":
        """Map command-line style flags to a selection; no flags means every stage."""
        names = list(names)
        if not names:
            return cls.all()
        return cls.subset(names)

    @property
    def is_all(self) -> bool:
        return self.stages is None

    def ordered(self) -> List[StageName]:
        """Return the selected stages in their fixed execution order."""
        if self.stages is None:
            return list(STAGE_ORDER)
        return [stage for stage in STAGE_ORDER if stage in self.stages]

    def __contains__(self, stage: object) -> bool:
        return self.stages is None or stage in self.stages


@dataclass(frozen=True)
class Classification:
    """Decision reached by the input classifier for one raw input string."""

    kind: InputKind
    target: str
    language: Optional[Language] = None


@dataclass(frozen=True)
class ResolvedSource:
    """A classified input materialized as a local path, or left unresolved."""

    kind: InputKind
    path: Optional[Path] = None
    language: Optional[Language] = None
    reason: Optional[str] = None


@dataclass
class FileSet:
    """Discovered source files, one ordered sequence per language."""

    solidity_files: List[Path] = field(default_factory=list)
    rust_files: List[Path] = field(default_factory=list)

    @classmethod
    def single(cls, path: Path, language: Language) -> "FileSet":
        if language is Language.SOLIDITY:
            return cls(solidity_files=[path])
        return cls(rust_files=[path])

    @property
    def total(self) -> int:
        return len(self.solidity_files) + len(self.rust_files)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def files_for(self, language: Language) -> List[Path]:
        if language is Language.SOLIDITY:
            return self.solidity_files
        return self.rust_files

    def only(self, language: Language) -> "FileSet":
        """Return a copy restricted to a single language."""
        return FileSet.single_language(language, self.files_for(language))

    @classmethod
    def single_language(cls, language: Language, files: Iterable[Path]) -> "FileSet":
        files = list(files)
        if language is Language.SOLIDITY:
            return cls(solidity_files=files)
        return cls(rust_files=files)

    def iter_files(self) -> Iterable[Tuple[Language, Path]]:
        """Yield files in dispatch order: every Solidity file, then every Rust file."""
        for path in self.solidity_files:
            yield Language.SOLIDITY, path
        for path in self.rust_files:
            yield Language.RUST, path
