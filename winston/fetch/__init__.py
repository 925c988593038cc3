"""Materialize remote inputs (git remotes, file URLs) on the local filesystem."""

from .download import Downloader
from .git import Cloner

__all__ = ["Cloner", "Downloader"]
