"""Tests for winston.models."""

from __future__ import annotations

from pathlib import Path

import pytest

from winston.models import FileSet, Language, StageName, StageSelection


def test_stage_selection_all_orders_every_stage() -> None:
    selection = StageSelection.all()

    assert selection.is_all
    assert selection.ordered() == [
        StageName.DIAGRAM,
        StageName.ANALYSIS,
        StageName.SEMGREP,
        StageName.STATIC,
        StageName.EXPLAIN,
    ]


def test_stage_selection_subset_keeps_fixed_order() -> None:
    selection = StageSelection.subset(["explain", StageName.DIAGRAM, "static"])

    assert not selection.is_all
    assert selection.ordered() == [StageName.DIAGRAM, StageName.STATIC, StageName.EXPLAIN]
    assert StageName.STATIC in selection
    assert StageName.ANALYSIS not in selection


def test_stage_selection_rejects_empty_subset() -> None:
    with pytest.raises(ValueError):
        StageSelection.subset([])


def test_stage_selection_from_no_flags_means_all() -> None:
    assert StageSelection.from_flags([]) == StageSelection.all()


def test_stage_selection_rejects_unknown_stage() -> None:
    with pytest.raises(ValueError):
        StageSelection.subset(["lint"])


def test_language_from_path() -> None:
    assert Language.from_path("contracts/Token.sol") is Language.SOLIDITY
    assert Language.from_path(Path("src/lib.rs")) is Language.RUST
    assert Language.from_path("README.md") is None


def test_file_set_iterates_solidity_before_rust() -> None:
    file_set = FileSet(
        solidity_files=[Path("a.sol"), Path("b.sol")],
        rust_files=[Path("c.rs")],
    )

    assert list(file_set.iter_files()) == [
        (Language.SOLIDITY, Path("a.sol")),
        (Language.SOLIDITY, Path("b.sol")),
        (Language.RUST, Path("c.rs")),
    ]
    assert file_set.total == 3
    assert file_set.only(Language.RUST).solidity_files == []
    assert file_set.only(Language.RUST).rust_files == [Path("c.rs")]


def test_file_set_single() -> None:
    file_set = FileSet.single(Path("x.rs"), Language.RUST)

    assert file_set.rust_files == [Path("x.rs")]
    assert file_set.solidity_files == []
    assert not file_set.is_empty
    assert FileSet().is_empty
