from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tests._fixtures.tree_builder import TreeBuilder


@pytest.fixture
def tree_builder(tmp_path: Path) -> TreeBuilder:
    """Provide a reusable source tree builder rooted at the pytest tmp_path."""
    return TreeBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _reset_winston_logger() -> Iterator[None]:
    """Undo CLI logging setup so caplog sees winston records."""
    logger = logging.getLogger("winston")
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for name, child in list(logging.Logger.manager.loggerDict.items()):
        if name.startswith("winston.") and isinstance(child, logging.Logger):
            child.setLevel(logging.NOTSET)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
