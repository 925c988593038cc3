"""Input classification: decide what kind of reference a raw input string is."""

from __future__ import annotations

import os
import stat
from typing import Callable

from .logging import get_logger
from .models import Classification, InputKind, Language

_FORGE_HOSTS = ("github.com/", "gitlab.com/", "bitbucket.org/")
_RAW_FILE_SUFFIXES = (".sol", ".rs", ".txt", ".json", ".js", ".md")

logger = get_logger("classifier")


def is_download_url(value: str) -> bool:
    """Return True for http(s) inputs that do not name a ``.git`` remote."""
    return value.startswith(("http://", "https://")) and not value.endswith(".git")


def is_git_url(value: str, *, force_git: bool = False) -> bool:
    """Return True when the input looks like a git remote (or git is forced)."""
    if force_git:
        return True
    if value.startswith(("git@", "git://")) or value.endswith(".git"):
        return True
    if not value.startswith(("http://", "https://")):
        return False
    on_forge = any(host in value for host in _FORGE_HOSTS)
    return on_forge and not value.endswith(_RAW_FILE_SUFFIXES)


class InputClassifier:
    """Classifies raw input references without touching the network.

    Precedence, first match wins:

    1. ``force_git`` or a git remote shape (``git@``, ``git://``, ``.git``) -> git repository
    2. ``http(s)://`` on a known forge without a raw-file suffix -> git repository
    3. any other ``http(s)://`` input -> direct download
    4. ``.sol`` / ``.rs`` suffix -> single file, decided from the name alone
    5. an existing directory -> directory; anything else -> unresolved
    """

    def __init__(self, stat_fn: Callable[[str], os.stat_result] | None = None) -> None:
        self._stat = stat_fn or os.stat

    def classify(self, value: str, *, force_git: bool = False) -> Classification:
        if is_git_url(value, force_git=force_git):
            return Classification(kind=InputKind.GIT_REPOSITORY, target=value)

        if is_download_url(value):
            return Classification(kind=InputKind.DOWNLOAD, target=value)

        language = Language.from_path(value)
        if language is not None:
            return Classification(kind=InputKind.SINGLE_FILE, target=value, language=language)

        try:
            mode = self._stat(value).st_mode
        except OSError as exc:
            logger.debug("Unable to stat %s: %s", value, exc)
            return Classification(kind=InputKind.UNRESOLVED, target=value)

        if stat.S_ISDIR(mode):
            return Classification(kind=InputKind.DIRECTORY, target=value)
        return Classification(kind=InputKind.UNRESOLVED, target=value)


__all__ = ["InputClassifier", "is_download_url", "is_git_url"]
