"""Stage implementations and the per-language stage registry."""

from __future__ import annotations

from typing import Callable, Dict

from ..llm.client import LLMClient
from ..models import STAGE_ORDER, Language, StageName
from .analysis import ExplainStage, SecurityAnalysisStage
from .base import LLMStage, Stage
from .diagram import RustDiagramStage, SolidityDiagramStage
from .semgrep import SemgrepRulesStage
from .static import RustStaticStage, SolidityStaticStage

StageTable = Dict[Language, Dict[StageName, Stage]]

_BUILTIN_FACTORIES: dict[Language, dict[StageName, Callable[[LLMClient], Stage]]] = {
    Language.SOLIDITY: {
        StageName.DIAGRAM: lambda client: SolidityDiagramStage(),
        StageName.ANALYSIS: lambda client: SecurityAnalysisStage(client, Language.SOLIDITY),
        StageName.SEMGREP: lambda client: SemgrepRulesStage(client, Language.SOLIDITY),
        StageName.STATIC: lambda client: SolidityStaticStage(),
        StageName.EXPLAIN: lambda client: ExplainStage(client, Language.SOLIDITY),
    },
    Language.RUST: {
        StageName.DIAGRAM: lambda client: RustDiagramStage(),
        StageName.ANALYSIS: lambda client: SecurityAnalysisStage(client, Language.RUST),
        StageName.SEMGREP: lambda client: SemgrepRulesStage(client, Language.RUST),
        StageName.STATIC: lambda client: RustStaticStage(),
        StageName.EXPLAIN: lambda client: ExplainStage(client, Language.RUST),
    },
}


def build_stages(client: LLMClient | None = None) -> StageTable:
    """Instantiate every stage for every language, sharing one LLM client."""

    client = client or LLMClient()
    table: StageTable = {}
    for language, factories in _BUILTIN_FACTORIES.items():
        table[language] = {}
        for name in STAGE_ORDER:
            instance = factories[name](client)
            if not isinstance(instance, Stage):
                raise TypeError(f"Stage factory for '{language.value}/{name.value}' did not return a Stage")
            table[language][name] = instance
    return table


__all__ = [
    "ExplainStage",
    "LLMStage",
    "RustDiagramStage",
    "RustStaticStage",
    "SecurityAnalysisStage",
    "SemgrepRulesStage",
    "SolidityDiagramStage",
    "SolidityStaticStage",
    "Stage",
    "StageTable",
    "build_stages",
]
