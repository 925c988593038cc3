"""LLM-backed security analysis and explanation stages."""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..llm.client import LLMClient
from ..models import Language, StageName
from . import prompts
from .base import LLMStage
from .outline import SourceOutline, build_outline


def describe_outline(outline: SourceOutline) -> str:
    """Return a short bullet list of the functions found, for prompt context."""
    entries = []
    for container in outline.containers:
        for function in container.functions:
            entries.append(f"- {container.name}.{function.name} ({function.visibility})")
    for function in outline.functions:
        entries.append(f"- {function.name} ({function.visibility})")
    if not entries:
        return ""
    return "\nIdentified functions:\n" + "\n".join(entries) + "\n"


class SecurityAnalysisStage(LLMStage):
    """Writes a functional and security analysis produced by the language model."""

    name = StageName.ANALYSIS

    def __init__(self, client: LLMClient, language: Language) -> None:
        self.language = language
        super().__init__(client)

    @property
    def suffix(self) -> str:
        return ".analysis.md" if self.language is Language.SOLIDITY else ".rust-analysis.md"

    def run(self, path: Path, output_dir: Path) -> List[Path]:
        source = self.read_source(path)
        file_name = Path(path).name
        prompt = prompts.ANALYSIS_PROMPT.format(
            language=self.language.label,
            file_name=file_name,
            fence=prompts.fence_for(self.language),
            code=source,
            outline=describe_outline(build_outline(source, self.language)),
        )
        self.logger.info("Requesting %s security analysis for %s", self.language.label, file_name)
        response = self.complete(prompt, system=prompts.ANALYSIS_SYSTEM)
        return [self.write_artifact(output_dir, f"{file_name}{self.suffix}", response + "\n")]


class ExplainStage(LLMStage):
    """Explains each function, then derives exploitable logic flaws from that explanation."""

    name = StageName.EXPLAIN

    def __init__(self, client: LLMClient, language: Language) -> None:
        self.language = language
        super().__init__(client)

    def run(self, path: Path, output_dir: Path) -> List[Path]:
        source = self.read_source(path)
        file_name = Path(path).name
        fence = prompts.fence_for(self.language)
        label = self.language.label

        self.logger.info("Requesting function explanations for %s", file_name)
        explanations = self.complete(
            prompts.EXPLAIN_PROMPT.format(
                file_name=file_name,
                fence=fence,
                code=source,
                outline=describe_outline(build_outline(source, self.language)),
            ),
            system=prompts.EXPLAIN_SYSTEM.format(language=label),
        )
        explanations_path = self.write_artifact(
            output_dir, f"{file_name}.explanations.md", explanations + "\n"
        )

        self.logger.info("Requesting logic vulnerability report for %s", file_name)
        vulnerabilities = self.complete(
            prompts.VULNERABILITY_PROMPT.format(fence=fence, code=source, explanations=explanations),
            system=prompts.VULNERABILITY_SYSTEM.format(language=label),
        )
        vulnerabilities_path = self.write_artifact(
            output_dir, f"{file_name}.logic-vulnerabilities.md", vulnerabilities + "\n"
        )
        return [explanations_path, vulnerabilities_path]
