"""Tests for the LLM-backed analysis and explanation stages."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.doubles import ScriptedRunner
from winston.config import LLMConfig
from winston.errors import LLMError
from winston.llm.client import LLMClient
from winston.models import Language, StageName
from winston.stages import build_stages
from winston.stages.analysis import ExplainStage, SecurityAnalysisStage

SOURCE = """
contract Vault {
    function withdraw(uint256 amount) external onlyOwner {}
}
"""


def _client(runner) -> LLMClient:
    return LLMClient(LLMConfig(api_key="secret"), runner=runner)


def _source(tmp_path: Path, name: str) -> Path:
    path = tmp_path / name
    path.write_text(SOURCE, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    ("language", "file_name", "expected"),
    [
        (Language.SOLIDITY, "Vault.sol", "Vault.sol.analysis.md"),
        (Language.RUST, "vault.rs", "vault.rs.rust-analysis.md"),
    ],
)
def test_analysis_stage_writes_model_response(tmp_path: Path, language, file_name, expected) -> None:
    runner = ScriptedRunner("## SUMMARY\nLooks risky.")
    stage = SecurityAnalysisStage(_client(runner), language)

    artifacts = stage.run(_source(tmp_path, file_name), tmp_path / "out")

    assert [path.name for path in artifacts] == [expected]
    assert artifacts[0].read_text(encoding="utf-8") == "## SUMMARY\nLooks risky.\n"
    prompt = runner.requests[0].prompt
    assert file_name in prompt
    assert "contract Vault" in prompt
    assert runner.requests[0].system is not None


def test_analysis_prompt_lists_outline_functions(tmp_path: Path) -> None:
    runner = ScriptedRunner("ok")
    SecurityAnalysisStage(_client(runner), Language.SOLIDITY).run(_source(tmp_path, "Vault.sol"), tmp_path)

    assert "- Vault.withdraw (external)" in runner.requests[0].prompt


def test_explain_stage_chains_two_calls(tmp_path: Path) -> None:
    runner = ScriptedRunner("### withdraw\nSends funds.", "1. Drain via withdraw (confidence 4)")
    stage = ExplainStage(_client(runner), Language.SOLIDITY)

    artifacts = stage.run(_source(tmp_path, "Vault.sol"), tmp_path / "out")

    assert [path.name for path in artifacts] == ["Vault.sol.explanations.md", "Vault.sol.logic-vulnerabilities.md"]
    assert len(runner.requests) == 2
    assert "### withdraw\nSends funds." in runner.requests[1].prompt
    assert "confidence" in runner.requests[1].system.lower()
    assert artifacts[1].read_text(encoding="utf-8").startswith("1. Drain via withdraw")


def test_explain_stage_failure_keeps_first_artifact_and_tags_stage(tmp_path: Path) -> None:
    responses = iter(["explanations"])

    def runner(request):
        try:
            return next(responses)
        except StopIteration:
            raise LLMError("LLM request failed with status 500: boom") from None

    stage = ExplainStage(_client(runner), Language.RUST)

    with pytest.raises(LLMError) as excinfo:
        stage.run(_source(tmp_path, "vault.rs"), tmp_path / "out")

    assert excinfo.value.stage == "explain"
    assert (tmp_path / "out" / "vault.rs.explanations.md").exists()
    assert not (tmp_path / "out" / "vault.rs.logic-vulnerabilities.md").exists()


def test_build_stages_registers_every_language_and_stage() -> None:
    table = build_stages(LLMClient(LLMConfig(api_key=None)))

    assert set(table) == set(Language)
    for language, stages in table.items():
        assert list(stages) == list(StageName)
        for name, stage in stages.items():
            assert stage.name is name
            assert stage.language is language
