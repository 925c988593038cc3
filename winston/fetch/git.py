"""Git clone utilities."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable

from ..errors import FetchError
from ..logging import get_logger

_DEFAULT_REPO_DIRNAME = "repository"


class Cloner:
    """Clones remote repositories into a deterministic directory under the workdir."""

    def __init__(
        self,
        workdir: Path | str = "temp_repos",
        runner: Callable[..., str] | None = None,
    ) -> None:
        self.workdir = Path(workdir)
        self._runner = runner or self._default_runner
        self.logger = get_logger("fetch.git")

    def target_dir(self, url: str) -> Path:
        """Return the local directory a clone of ``url`` is written to."""
        return self.workdir / repo_dirname(url)

    def clone(self, url: str) -> Path:
        """Clone ``url`` into a freshly emptied target directory and return it."""
        target = self.target_dir(url).resolve()
        if target.parent != self.workdir.resolve():
            raise FetchError(url, f"Refusing to clone {url} outside of {self.workdir}")
        self.logger.info("Cloning repository %s into %s", url, target)

        target.mkdir(parents=True, exist_ok=True)
        _empty_dir(target)

        try:
            self._run(["git", "clone", url, str(target)], cwd=self.workdir.resolve())
        except FileNotFoundError as exc:
            raise FetchError(url, "Unable to locate 'git'. Install git to audit repositories.") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or f"exit code {exc.returncode}"
            raise FetchError(url, f"Failed to clone repository {url}: {detail}") from exc

        self.logger.info("Repository cloned to %s", target)
        return target

    # ------------------------------------------------------------------
    # Helpers

    def _run(self, args: Iterable[str], *, cwd: Path) -> str:
        return self._runner(args, cwd=cwd)

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=True,
        )
        return completed.stdout


def repo_dirname(url: str) -> str:
    """Derive a directory name from the last path segment of a remote URL."""
    trimmed = url.rstrip("/")
    name = trimmed.replace(":", "/").rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if name in ("", ".", ".."):
        return _DEFAULT_REPO_DIRNAME
    return name


def _empty_dir(path: Path) -> None:
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


__all__ = ["Cloner", "repo_dirname"]
