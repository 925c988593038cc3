"""Tests for the git cloner."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

import pytest

from winston.errors import FetchError
from winston.fetch.git import Cloner, repo_dirname


def _fake_clone(contents: dict[str, str], calls: list):
    def runner(args, cwd):
        args = list(args)
        calls.append((args, Path(cwd)))
        target = Path(args[-1])
        for relative, text in contents.items():
            path = target / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return ""

    return runner


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/org/vault.git", "vault"),
        ("https://github.com/org/vault", "vault"),
        ("https://github.com/org/vault/", "vault"),
        ("git@github.com:org/vault.git", "vault"),
        ("https://", "repository"),
        ("https://github.com/org/..", "repository"),
        ("https://github.com/org/.", "repository"),
    ],
)
def test_repo_dirname(url: str, expected: str) -> None:
    assert repo_dirname(url) == expected


def test_clone_runs_git_clone_into_target(tmp_path: Path) -> None:
    calls: list = []
    cloner = Cloner(tmp_path / "work", runner=_fake_clone({"A.sol": "contract A {}"}, calls))

    target = cloner.clone("https://github.com/org/vault.git")

    assert target == (tmp_path / "work" / "vault").resolve()
    assert calls == [
        (["git", "clone", "https://github.com/org/vault.git", str(target)], (tmp_path / "work").resolve())
    ]
    assert (target / "A.sol").read_text(encoding="utf-8") == "contract A {}"


def test_reclone_leaves_only_second_clone_contents(tmp_path: Path) -> None:
    url = "https://github.com/org/vault.git"
    calls: list = []

    first = Cloner(tmp_path, runner=_fake_clone({"old/Old.sol": "1", "shared.sol": "first"}, calls))
    first.clone(url)
    second = Cloner(tmp_path, runner=_fake_clone({"new/New.sol": "2", "shared.sol": "second"}, calls))
    target = second.clone(url)

    files = sorted(path.relative_to(target).as_posix() for path in target.rglob("*") if path.is_file())
    assert files == ["new/New.sol", "shared.sol"]
    assert (target / "shared.sol").read_text(encoding="utf-8") == "second"


def test_clone_failure_raises_fetch_error(tmp_path: Path) -> None:
    def runner(args, cwd):
        raise subprocess.CalledProcessError(128, list(args), stderr="fatal: repository not found\n")

    cloner = Cloner(tmp_path, runner=runner)

    with pytest.raises(FetchError) as excinfo:
        cloner.clone("https://github.com/org/missing.git")

    assert excinfo.value.url == "https://github.com/org/missing.git"
    assert "repository not found" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, subprocess.CalledProcessError)


def test_clone_without_git_binary_raises_fetch_error(tmp_path: Path) -> None:
    def runner(args, cwd):
        raise FileNotFoundError("git")

    with pytest.raises(FetchError, match="git"):
        Cloner(tmp_path, runner=runner).clone("https://github.com/org/vault.git")


@pytest.mark.parametrize("url", ["https://github.com/org/..", "https://github.com/org/."])
def test_dot_segment_url_never_empties_workdir_or_its_parent(tmp_path: Path, url: str) -> None:
    precious = tmp_path / "precious.txt"
    precious.write_text("keep", encoding="utf-8")
    workdir = tmp_path / "temp_repos"
    (workdir / "downloads").mkdir(parents=True)
    (workdir / "downloads" / "Kept.sol").write_text("contract Kept {}", encoding="utf-8")

    def runner(args, cwd):
        raise subprocess.CalledProcessError(128, list(args), stderr="fatal: not found\n")

    with pytest.raises(FetchError):
        Cloner(workdir, runner=runner).clone(url)

    assert precious.read_text(encoding="utf-8") == "keep"
    assert (workdir / "downloads" / "Kept.sol").exists()
    assert (workdir / "repository").is_dir()


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_clone_refuses_target_resolving_outside_workdir(tmp_path: Path) -> None:
    outside = tmp_path / "elsewhere"
    outside.mkdir()
    (outside / "keep.txt").write_text("keep", encoding="utf-8")
    workdir = tmp_path / "work"
    workdir.mkdir()
    (workdir / "vault").symlink_to(outside, target_is_directory=True)
    calls: list = []

    with pytest.raises(FetchError, match="outside"):
        Cloner(workdir, runner=_fake_clone({}, calls)).clone("https://github.com/org/vault.git")

    assert calls == []
    assert (outside / "keep.txt").exists()
