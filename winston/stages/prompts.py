"""Prompt text for the LLM-backed stages."""

from __future__ import annotations

from ..models import Language

ANALYSIS_SYSTEM = (
    "You are an expert smart contract security auditor who finds subtle business-logic flaws "
    "that automated tools miss."
)

ANALYSIS_PROMPT = """Analyze the following {language} code from `{file_name}`.

```{fence}
{code}
```
{outline}
Provide a security analysis in Markdown with these sections:

1. SUMMARY: what the code does, in two or three sentences
2. ARCHITECTURE: key components and how they relate
3. BUSINESS LOGIC ANALYSIS: how the core functionality works
4. RISK ASSESSMENT: high, medium and low risk issues
5. ATTACK VECTORS: realistic ways the code could be exploited
6. RECOMMENDATIONS: specific code changes that improve security
"""

EXPLAIN_SYSTEM = "You are a senior {language} engineer explaining code to security auditors."

EXPLAIN_PROMPT = """Explain `{file_name}` function by function.

```{fence}
{code}
```
{outline}
For every function describe its purpose, parameters, state it reads and writes, external calls,
access control, and the assumptions it makes about callers and inputs. Use one heading per function.
"""

VULNERABILITY_SYSTEM = (
    "You are an expert {language} security auditor. For every vulnerability you report you must "
    "assign a confidence rating from 1 (low) to 5 (certain)."
)

VULNERABILITY_PROMPT = """Using the original code and its detailed explanation, list ONLY vulnerabilities
with a realistic exploitation path.

ORIGINAL CODE:
```{fence}
{code}
```

DETAILED EXPLANATIONS:
{explanations}

For each vulnerability give: a title, a confidence rating (1-5), the functions involved,
the exploitation path, the impact, and a suggested fix. Do not report style or gas issues.
"""

SEMGREP_SYSTEM = "You are an expert security rule author with deep knowledge of Semgrep pattern syntax."

SEMGREP_PROMPT = """Write Semgrep rules that detect the vulnerability classes present in, or likely for,
the following {language} code from `{file_name}`.

```{fence}
{code}
```

Return each rule set as a fenced ```yaml block with a top-level `rules:` list. Every rule needs an
`id`, `message`, `severity`, `languages: [{semgrep_language}]` and a `pattern` or `patterns` entry.
"""


def fence_for(language: Language) -> str:
    return "solidity" if language is Language.SOLIDITY else "rust"


def semgrep_language_for(language: Language) -> str:
    return "solidity" if language is Language.SOLIDITY else "rust"
