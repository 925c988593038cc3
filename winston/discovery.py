"""Recursive discovery of Solidity and Rust sources."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, FrozenSet, Iterator, List, Set

from .errors import DiscoveryError
from .logging import get_logger
from .models import FileSet, Language

_ALWAYS_EXCLUDED_DIRS = frozenset({"node_modules"})

# Rust build output is skipped only by the Rust pass.
_EXCLUDED_DIRS_BY_LANGUAGE: Dict[Language, FrozenSet[str]] = {
    Language.SOLIDITY: _ALWAYS_EXCLUDED_DIRS,
    Language.RUST: _ALWAYS_EXCLUDED_DIRS | {"target"},
}


def _raise_discovery_error(exc: OSError) -> None:
    path = exc.filename or ""
    raise DiscoveryError(path, f"Failed to read directory {path}: {exc.strerror or exc}") from exc


def _is_pruned(name: str, excluded: FrozenSet[str]) -> bool:
    return name.startswith(".") or name in excluded


class FileDiscovery:
    """Walks a directory tree once per language and collects matching files."""

    def __init__(self, *, follow_symlinks: bool = True) -> None:
        self.follow_symlinks = follow_symlinks
        self.logger = get_logger("discovery")

    def discover(self, root: Path | str) -> FileSet:
        """Run the Solidity pass and the Rust pass over ``root``."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.is_dir():
            raise DiscoveryError(root_path, f"Discovery root is not a directory: {root_path}")

        return FileSet(
            solidity_files=self.find(root_path, Language.SOLIDITY),
            rust_files=self.find(root_path, Language.RUST),
        )

    def find(self, root: Path | str, language: Language) -> List[Path]:
        """Return every ``language`` source below ``root`` in walk order."""
        root_path = Path(root).expanduser().resolve()
        self.logger.info("Finding %s files in %s", language.label, root_path)
        files = list(self._iter_files(root_path, language))
        self.logger.info("Found %d %s files", len(files), language.label)
        return files

    def _iter_files(self, root: Path, language: Language) -> Iterator[Path]:
        excluded = _EXCLUDED_DIRS_BY_LANGUAGE[language]
        suffix = language.suffix
        visited_dirs: Set[str] = set()
        seen_files: Set[str] = set()

        walker = os.walk(root, onerror=_raise_discovery_error, followlinks=self.follow_symlinks)
        for dirpath, dirnames, filenames in walker:
            real_dir = os.path.realpath(dirpath)
            if real_dir in visited_dirs:
                # Symlink back into a directory already walked.
                dirnames[:] = []
                continue
            visited_dirs.add(real_dir)

            dirnames[:] = sorted(name for name in dirnames if not _is_pruned(name, excluded))

            current = Path(dirpath)
            for filename in sorted(filenames):
                if not filename.endswith(suffix):
                    continue
                path = current / filename
                if not os.path.isfile(path):
                    self.logger.warning("Skipping %s: not a readable file", path)
                    continue
                real_file = os.path.realpath(path)
                if real_file in seen_files:
                    continue
                seen_files.add(real_file)
                yield path


__all__ = ["FileDiscovery"]
