"""Semgrep rule generation stage."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..llm.client import LLMClient
from ..models import Language, StageName
from . import prompts
from .base import LLMStage

_YAML_BLOCK = re.compile(r"```(?:yaml|yml)[ \t]*\n(.*?)```", re.S | re.I)
_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]+")


def extract_yaml_blocks(response: str) -> List[str]:
    """Return the bodies of fenced YAML blocks in a model response."""
    return [block.strip() for block in _YAML_BLOCK.findall(response) if block.strip()]


def parse_rules(block: str) -> Optional[List[Dict[str, Any]]]:
    """Parse a YAML block into its ``rules`` list, or ``None`` when it is unusable."""
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError:
        return None
    if isinstance(data, dict) and isinstance(data.get("rules"), list):
        return [rule for rule in data["rules"] if isinstance(rule, dict)]
    if isinstance(data, list):
        return [rule for rule in data if isinstance(rule, dict)]
    return None


def rule_filename(rule_id: str, file_name: str) -> str:
    safe = _SAFE_ID.sub("-", rule_id).strip("-") or "rule"
    return f"{safe}-{file_name}.yml"


class SemgrepRulesStage(LLMStage):
    """Asks the model for Semgrep rules and writes one YAML file per rule."""

    name = StageName.SEMGREP

    def __init__(self, client: LLMClient, language: Language) -> None:
        self.language = language
        super().__init__(client)

    @property
    def directory_name(self) -> str:
        return "semgrep-rules" if self.language is Language.SOLIDITY else "semgrep-rust-rules"

    def run(self, path: Path, output_dir: Path) -> List[Path]:
        source = self.read_source(path)
        file_name = Path(path).name
        rules_dir = Path(output_dir) / self.directory_name

        self.logger.info("Requesting Semgrep rules for %s", file_name)
        response = self.complete(
            prompts.SEMGREP_PROMPT.format(
                language=self.language.label,
                file_name=file_name,
                fence=prompts.fence_for(self.language),
                code=source,
                semgrep_language=prompts.semgrep_language_for(self.language),
            ),
            system=prompts.SEMGREP_SYSTEM,
        )

        written, rule_ids = self._write_rules(response, rules_dir, file_name)
        if not written:
            self.logger.warning("No usable Semgrep rules in response for %s; saving full response", file_name)
            written.append(self.write_artifact(rules_dir, f"full-response-{file_name}.md", response + "\n"))
        written.append(self.write_artifact(rules_dir, "README.md", self._readme(file_name, rule_ids)))
        self.logger.info("Wrote %d Semgrep rule(s) for %s", len(rule_ids), file_name)
        return written

    def _write_rules(self, response: str, rules_dir: Path, file_name: str) -> Tuple[List[Path], List[str]]:
        written: List[Path] = []
        rule_ids: List[str] = []
        raw_index = 0
        for block in extract_yaml_blocks(response):
            rules = parse_rules(block)
            if rules is None:
                raw_index += 1
                written.append(self.write_artifact(rules_dir, f"raw-rule-{raw_index}-{file_name}.yml", block + "\n"))
                continue
            for rule in rules:
                rule_id = rule.get("id")
                if not isinstance(rule_id, str) or not rule_id.strip():
                    continue
                content = yaml.safe_dump({"rules": [rule]}, sort_keys=False)
                written.append(self.write_artifact(rules_dir, rule_filename(rule_id, file_name), content))
                rule_ids.append(rule_id)
        return written, rule_ids

    def _readme(self, file_name: str, rule_ids: List[str]) -> str:
        lines = [
            f"# Semgrep rules for {file_name}",
            "",
            f"Generated {self.language.label} rules. Run them with:",
            "",
            "```bash",
            f"semgrep --config {self.directory_name}/ <path-to-code>",
            "```",
            "",
        ]
        if rule_ids:
            lines.append("## Rules")
            lines.append("")
            lines.extend(f"- `{rule_id}`" for rule_id in rule_ids)
        else:
            lines.append("No structured rules could be extracted; see the saved response files.")
        return "\n".join(lines) + "\n"
