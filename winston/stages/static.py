"""Heuristic static analysis for Solidity and Rust sources."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..logging import get_logger
from ..models import Language, StageName
from .base import Stage
from .outline import SourceOutline, build_outline, line_of, strip_comments

SEVERITIES = ("high", "medium", "low", "info")
_SEVERITY_TITLES = {
    "high": "High Severity Issues",
    "medium": "Medium Severity Issues",
    "low": "Low Severity Issues",
    "info": "Informational",
}


@dataclass(frozen=True)
class Finding:
    severity: str
    title: str
    description: str
    recommendation: str
    lines: Sequence[int] = ()


@dataclass(frozen=True)
class PatternCheck:
    """Flags every line matching ``pattern`` unless ``unless`` matches the source."""

    severity: str
    title: str
    description: str
    recommendation: str
    pattern: re.Pattern[str]
    unless: Optional[re.Pattern[str]] = None

    def evaluate(self, code: str) -> Optional[Finding]:
        if self.unless is not None and self.unless.search(code):
            return None
        lines = [line_of(code, match.start()) for match in self.pattern.finditer(code)]
        if not lines:
            return None
        return Finding(
            severity=self.severity,
            title=self.title,
            description=self.description,
            recommendation=self.recommendation,
            lines=tuple(dict.fromkeys(lines)),
        )


OutlineCheck = Callable[[str, SourceOutline], List[Finding]]


_SOLIDITY_PATTERNS: Sequence[PatternCheck] = (
    PatternCheck(
        severity="high",
        title="Authorization Through tx.origin",
        description="tx.origin is the externally owned account that started the transaction; a malicious "
        "intermediate contract can pass checks based on it.",
        recommendation="Use msg.sender for authorization checks.",
        pattern=re.compile(r"\btx\.origin\b"),
    ),
    PatternCheck(
        severity="high",
        title="Delegatecall Usage",
        description="delegatecall executes foreign code against this contract's storage.",
        recommendation="Only delegatecall into trusted, immutable targets and validate the callee address.",
        pattern=re.compile(r"\.delegatecall\s*\("),
    ),
    PatternCheck(
        severity="high",
        title="Self-Destruct Reachable",
        description="selfdestruct removes the contract code and forwards its ether balance.",
        recommendation="Remove selfdestruct or guard it behind strict access control.",
        pattern=re.compile(r"\b(?:selfdestruct|suicide)\s*\("),
    ),
    PatternCheck(
        severity="medium",
        title="Low-Level Call",
        description="Low-level calls do not revert on failure and hand control to the callee.",
        recommendation="Check the returned success flag and follow the checks-effects-interactions pattern.",
        pattern=re.compile(r"\.call\s*(?:\{[^}]*\}\s*)?\("),
    ),
    PatternCheck(
        severity="medium",
        title="Unchecked Ether Transfer",
        description="send() returns false on failure instead of reverting.",
        recommendation="Check the return value of send() or use call with an explicit success check.",
        pattern=re.compile(r"\.send\s*\("),
    ),
    PatternCheck(
        severity="low",
        title="Timestamp Dependence",
        description="block.timestamp can be influenced by block producers within a small window.",
        recommendation="Avoid using block.timestamp for randomness or tight time windows.",
        pattern=re.compile(r"\bblock\.timestamp\b|\bnow\b"),
    ),
    PatternCheck(
        severity="low",
        title="Floating Pragma",
        description="A floating pragma allows compilation with versions other than the one tested.",
        recommendation="Pin the compiler version, e.g. `pragma solidity 0.8.24;`.",
        pattern=re.compile(r"pragma\s+solidity\s*[\^>~]"),
    ),
    PatternCheck(
        severity="info",
        title="Weak Randomness Source",
        description="Chain attributes such as blockhash or block.prevrandao are predictable.",
        recommendation="Use a verifiable randomness oracle.",
        pattern=re.compile(r"\bblockhash\s*\(|\bblock\.(?:difficulty|prevrandao)\b"),
    ),
)

_PRAGMA_VERSION = re.compile(r"pragma\s+solidity\s*[\^>=<~\s]*0\.(\d+)\.")
_PRIVILEGED_NAMES = ("mint", "burn", "pause", "unpause", "upgradeTo", "setOwner", "withdraw")
_ACCESS_MODIFIER = re.compile(r"^only|auth|admin|owner", re.I)
_REENTRANCY_GUARD = re.compile(r"nonReentrant|noReentrancy|lock", re.I)


def _solidity_outline_checks(code: str, outline: SourceOutline) -> List[Finding]:
    findings: List[Finding] = []

    version = _PRAGMA_VERSION.search(code)
    if version and int(version.group(1)) < 8 and "SafeMath" not in code:
        findings.append(
            Finding(
                severity="medium",
                title="Potential Integer Overflow/Underflow",
                description="The compiler version predates built-in overflow checks and SafeMath is not used.",
                recommendation="Upgrade to Solidity 0.8+ or use SafeMath for arithmetic.",
                lines=(line_of(code, version.start()),),
            )
        )

    unguarded = []
    for function in outline.all_functions():
        if function.name not in _PRIVILEGED_NAMES:
            continue
        if function.visibility not in {"public", "external"}:
            continue
        if any(_ACCESS_MODIFIER.search(modifier) for modifier in function.modifiers):
            continue
        unguarded.append(function)
    if unguarded:
        findings.append(
            Finding(
                severity="high",
                title="Missing Access Control on Privileged Function",
                description="Externally callable privileged functions without an access modifier: "
                + ", ".join(f"`{function.name}`" for function in unguarded),
                recommendation="Restrict these functions with an access-control modifier such as onlyOwner.",
                lines=tuple(function.line for function in unguarded),
            )
        )

    if re.search(r"\.call\s*\{[^}]*value", code):
        guarded = any(
            _REENTRANCY_GUARD.search(modifier)
            for function in outline.all_functions()
            for modifier in function.modifiers
        )
        if not guarded:
            findings.append(
                Finding(
                    severity="high",
                    title="Possible Reentrancy",
                    description="Ether is sent with a low-level call and no function uses a reentrancy guard.",
                    recommendation="Apply a reentrancy guard or update state before the external call.",
                )
            )

    return findings


_RUST_PATTERNS: Sequence[PatternCheck] = (
    PatternCheck(
        severity="high",
        title="Unsafe Block Usage",
        description="Unsafe blocks bypass Rust safety guarantees and may lead to undefined behavior or "
        "memory corruption.",
        recommendation="Review every unsafe block, prefer safe alternatives, and document the invariants upheld.",
        pattern=re.compile(r"\bunsafe\b"),
    ),
    PatternCheck(
        severity="medium",
        title="Unwrap on Option/Result",
        description="unwrap() panics when the value is None or Err, aborting the program.",
        recommendation="Handle the error with match, if let, or the ? operator.",
        pattern=re.compile(r"\.unwrap\(\)"),
    ),
    PatternCheck(
        severity="low",
        title="Expect on Option/Result",
        description="expect() still panics on None or Err, only with a custom message.",
        recommendation="Handle the error with match, if let, or the ? operator.",
        pattern=re.compile(r"\.expect\("),
    ),
    PatternCheck(
        severity="medium",
        title="Potential Integer Overflow",
        description="Unchecked arithmetic on unsigned integers wraps silently in release builds.",
        recommendation="Use checked_*, saturating_* or wrapping_* arithmetic explicitly.",
        pattern=re.compile(r"\w\s*(?:\+|-|\*)=\s*\w"),
    ),
    PatternCheck(
        severity="low",
        title="Ignored Error Results",
        description="`let _ = ...` discards results that may carry errors.",
        recommendation="Handle the error or document why ignoring it is safe.",
        pattern=re.compile(r"let\s+_\s*=\s*.*\)\s*;"),
    ),
    PatternCheck(
        severity="low",
        title="HashMap Without Capacity Hint",
        description="Unbounded HashMap growth can degrade performance under adversarial input.",
        recommendation="Use HashMap::with_capacity() when the size is known.",
        pattern=re.compile(r"\bHashMap::new\(\)"),
        unless=re.compile(r"\bwith_capacity\b"),
    ),
    PatternCheck(
        severity="info",
        title="Basic Authorization Check",
        description="Authorization relies on a single owner comparison.",
        recommendation="Consider role-based access control or multi-signature authorization.",
        pattern=re.compile(r"if\s+[\w.]+\s*!=\s*self\.owner"),
    ),
)


def _rust_outline_checks(code: str, outline: SourceOutline) -> List[Finding]:
    unsafe_fns = [
        function
        for function in outline.all_functions()
        if re.search(rf"\bunsafe\s+fn\s+{re.escape(function.name)}\b", code) and function.visibility == "pub"
    ]
    if not unsafe_fns:
        return []
    return [
        Finding(
            severity="medium",
            title="Public Unsafe Function",
            description="Public unsafe functions push safety obligations onto every caller: "
            + ", ".join(f"`{function.name}`" for function in unsafe_fns),
            recommendation="Document the safety contract with a `# Safety` section or expose a safe wrapper.",
            lines=tuple(function.line for function in unsafe_fns),
        )
    ]


@dataclass
class StaticReport:
    file_name: str
    findings: List[Finding] = field(default_factory=list)

    def by_severity(self, severity: str) -> List[Finding]:
        return [finding for finding in self.findings if finding.severity == severity]

    def render(self, footer: str) -> str:
        generated = datetime.now(timezone.utc).isoformat(timespec="seconds")
        lines = [f"# Static Analysis Report: {self.file_name}", "", f"*Generated on: {generated}*", ""]
        lines.extend(["## Results Summary", ""])
        for severity in SEVERITIES:
            lines.append(f"- {_SEVERITY_TITLES[severity]}: {len(self.by_severity(severity))}")
        lines.append("")
        for severity in SEVERITIES:
            findings = self.by_severity(severity)
            if not findings:
                continue
            lines.extend([f"## {_SEVERITY_TITLES[severity]}", ""])
            for index, finding in enumerate(findings, start=1):
                lines.extend([f"### {index}. {finding.title}", ""])
                if finding.lines:
                    lines.extend([f"**Lines:** {', '.join(str(line) for line in finding.lines)}", ""])
                lines.extend([f"**Description:** {finding.description}", ""])
                lines.extend([f"**Recommendation:** {finding.recommendation}", ""])
        lines.extend(["## Additional Notes", "", footer])
        return "\n".join(lines).rstrip() + "\n"


class StaticAnalysisStage(Stage):
    """Runs regex and outline checks; never calls the network."""

    name = StageName.STATIC
    suffix: str
    footer: str
    patterns: Sequence[PatternCheck]
    outline_check: OutlineCheck

    def __init__(self) -> None:
        self.logger = get_logger("stages.static")

    def analyze(self, source: str, file_name: str) -> StaticReport:
        code = strip_comments(source, self.language)
        outline = build_outline(source, self.language)
        report = StaticReport(file_name=file_name)
        for check in self.patterns:
            finding = check.evaluate(code)
            if finding is not None:
                report.findings.append(finding)
        report.findings.extend(self.outline_check(code, outline))
        return report

    def run(self, path: Path, output_dir: Path) -> List[Path]:
        file_name = Path(path).name
        report = self.analyze(self.read_source(path), file_name)
        self.logger.debug("%s: %d static findings", file_name, len(report.findings))
        return [self.write_artifact(output_dir, f"{file_name}{self.suffix}", report.render(self.footer))]


class SolidityStaticStage(StaticAnalysisStage):
    language = Language.SOLIDITY
    suffix = ".static-analysis.md"
    footer = (
        "This is an automated analysis and may contain false positives. Manual review is still recommended.\n"
        "Consider running Slither or Mythril for deeper analysis."
    )
    patterns = _SOLIDITY_PATTERNS
    outline_check = staticmethod(_solidity_outline_checks)


class RustStaticStage(StaticAnalysisStage):
    language = Language.RUST
    suffix = ".rust-static-analysis.md"
    footer = (
        "This is an automated analysis and may contain false positives. Manual review is still recommended.\n"
        "Consider using tools like 'cargo audit' and 'cargo deny' for dependency security checks."
    )
    patterns = _RUST_PATTERNS
    outline_check = staticmethod(_rust_outline_checks)
