"""Lightweight structural outline of Solidity and Rust sources.

The outline is regex driven: comments and string literals are blanked first,
then declarations are located and their bodies delimited by brace matching.
It is good enough for diagrams and heuristics, not a parser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..models import Language

_SOL_STRIP = re.compile(
    r"(\"(?:\\.|[^\"\\\n])*\"|'(?:\\.|[^'\\\n])*')|(//[^\n]*|/\*.*?\*/)", re.S
)
_RUST_STRIP = re.compile(r"(\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\\n])')|(//[^\n]*|/\*.*?\*/)", re.S)

_SOL_CONTAINER = re.compile(
    r"\b(?:abstract\s+)?(contract|interface|library)\s+(\w+)(?:\s+is\s+([^{]+))?\s*\{"
)
_SOL_FUNCTION = re.compile(r"\b(function\s+(\w+)|constructor|fallback|receive)\s*\(")
_SOL_VISIBILITY = ("public", "external", "internal", "private")
_SOL_NON_MODIFIERS = frozenset(
    {
        "public",
        "external",
        "internal",
        "private",
        "view",
        "pure",
        "payable",
        "nonpayable",
        "virtual",
        "override",
        "returns",
        "constant",
    }
)
_SOL_STATE_VAR = re.compile(
    r"^(mapping\s*\(.*\)|[A-Za-z_][\w.]*(?:\s*\[[^\]]*\])*)"
    r"((?:\s+(?:public|private|internal|constant|immutable|override))*)"
    r"\s+([A-Za-z_]\w*)\s*(?:=.*)?$",
    re.S,
)
_SOL_NON_STATE_PREFIXES = (
    "function",
    "modifier",
    "event",
    "constructor",
    "fallback",
    "receive",
    "struct",
    "enum",
    "using",
    "error",
    "return",
)

_RUST_ITEM = re.compile(
    r"^[ \t]*(pub(?:\([^)]*\))?\s+)?(struct|enum|trait)\s+(\w+)[^;{]*([;{])", re.M
)
_RUST_IMPL = re.compile(
    r"^[ \t]*impl(?:\s*<[^>{]*>)?\s+(?:([\w:]+)(?:<[^>{]*>)?\s+for\s+)?([\w:]+)[^{]*\{", re.M
)
_RUST_FN = re.compile(r"^[ \t]*(pub(?:\([^)]*\))?\s+)?(?:(?:const|async|unsafe|extern\s+\"\w+\")\s+)*fn\s+(\w+)", re.M)
_RUST_FIELD = re.compile(r"^\s*(pub(?:\([^)]*\))?\s+)?(\w+)\s*:\s*(.+?)\s*$")


@dataclass
class FunctionInfo:
    name: str
    visibility: str
    modifiers: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class FieldInfo:
    name: str
    type_name: str
    visibility: str = ""


@dataclass
class ContainerInfo:
    """A contract, interface, library, struct, enum or trait."""

    name: str
    kind: str
    bases: List[str] = field(default_factory=list)
    functions: List[FunctionInfo] = field(default_factory=list)
    fields: List[FieldInfo] = field(default_factory=list)
    line: int = 0

    def function(self, name: str) -> Optional[FunctionInfo]:
        for function in self.functions:
            if function.name == name:
                return function
        return None


@dataclass
class SourceOutline:
    language: Language
    containers: List[ContainerInfo] = field(default_factory=list)
    functions: List[FunctionInfo] = field(default_factory=list)

    def all_functions(self) -> List[FunctionInfo]:
        result = list(self.functions)
        for container in self.containers:
            result.extend(container.functions)
        return result

    def container(self, name: str) -> Optional[ContainerInfo]:
        for container in self.containers:
            if container.name == name:
                return container
        return None


def strip_comments(source: str, language: Language) -> str:
    """Blank comments and string contents while preserving offsets of everything else."""
    pattern = _SOL_STRIP if language is Language.SOLIDITY else _RUST_STRIP

    def _replace(match: re.Match[str]) -> str:
        text = match.group(0)
        if match.group(1) is not None:
            quote = text[0]
            return quote + " " * (len(text) - 2) + quote
        return re.sub(r"[^\n]", " ", text)

    return pattern.sub(_replace, source)


def block_end(text: str, open_index: int) -> int:
    """Return the index just past the brace matching ``text[open_index]``."""
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return len(text)


def line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index) + 1


def build_outline(source: str, language: Language) -> SourceOutline:
    if language is Language.SOLIDITY:
        return _solidity_outline(source)
    return _rust_outline(source)


# ----------------------------------------------------------------------
# Solidity


def _solidity_outline(source: str) -> SourceOutline:
    text = strip_comments(source, Language.SOLIDITY)
    outline = SourceOutline(language=Language.SOLIDITY)

    for match in _SOL_CONTAINER.finditer(text):
        open_index = match.end() - 1
        end = block_end(text, open_index)
        body_start = open_index + 1
        body = text[body_start : end - 1]
        bases = [_base_name(part) for part in (match.group(3) or "").split(",") if part.strip()]
        container = ContainerInfo(
            name=match.group(2),
            kind=match.group(1),
            bases=bases,
            line=line_of(text, match.start()),
        )
        container.functions = _solidity_functions(text, body_start, end - 1)
        container.fields = _solidity_state_vars(body)
        outline.containers.append(container)

    return outline


def _base_name(part: str) -> str:
    # `Ownable(msg.sender)` -> `Ownable`
    return part.strip().split("(", 1)[0].strip()


def _solidity_functions(text: str, start: int, end: int) -> List[FunctionInfo]:
    functions: List[FunctionInfo] = []
    index = start
    while True:
        match = _SOL_FUNCTION.search(text, index, end)
        if match is None:
            break
        params_end = _paren_end(text, match.end() - 1)
        header_end = params_end
        while header_end < end and text[header_end] not in "{;":
            header_end += 1
        tail = text[params_end:header_end]
        name = match.group(2) or match.group(1)
        visibility, modifiers = _solidity_qualifiers(tail)
        functions.append(
            FunctionInfo(
                name=name,
                visibility=visibility,
                modifiers=modifiers,
                line=line_of(text, match.start()),
            )
        )
        if header_end < end and text[header_end] == "{":
            index = block_end(text, header_end)
        else:
            index = header_end + 1
    return functions


def _paren_end(text: str, open_index: int) -> int:
    depth = 0
    for index in range(open_index, len(text)):
        if text[index] == "(":
            depth += 1
        elif text[index] == ")":
            depth -= 1
            if depth == 0:
                return index + 1
    return len(text)


def _solidity_qualifiers(tail: str) -> Tuple[str, List[str]]:
    tail = re.sub(r"\breturns\s*\(.*\)", " ", tail, flags=re.S)
    tail = re.sub(r"\boverride\s*\([^)]*\)", " ", tail)
    visibility = "default"
    modifiers: List[str] = []
    for token in re.finditer(r"([A-Za-z_]\w*)(\s*\([^)]*\))?", tail):
        word = token.group(1)
        if word in _SOL_VISIBILITY:
            visibility = word
        elif word not in _SOL_NON_MODIFIERS:
            modifiers.append(word)
    return visibility, modifiers


def _solidity_state_vars(body: str) -> List[FieldInfo]:
    top_level = _flatten_blocks(body)
    fields: List[FieldInfo] = []
    for statement in top_level.split(";"):
        statement = " ".join(statement.replace("{}", " ").split())
        if not statement or statement.startswith(_SOL_NON_STATE_PREFIXES):
            continue
        match = _SOL_STATE_VAR.match(statement)
        if match is None:
            continue
        qualifiers = match.group(2).split()
        visibility = next((word for word in qualifiers if word in _SOL_VISIBILITY), "internal")
        fields.append(
            FieldInfo(name=match.group(3), type_name=" ".join(match.group(1).split()), visibility=visibility)
        )
    return fields


def _flatten_blocks(body: str) -> str:
    """Collapse every nested ``{...}`` block to ``{}`` and end it as a statement."""
    parts: List[str] = []
    depth = 0
    for char in body:
        if char == "{":
            if depth == 0:
                parts.append("{")
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                parts.append("};")
        elif depth == 0:
            parts.append(char)
    return "".join(parts)


# ----------------------------------------------------------------------
# Rust


def _rust_outline(source: str) -> SourceOutline:
    text = strip_comments(source, Language.RUST)
    outline = SourceOutline(language=Language.RUST)
    claimed: List[Tuple[int, int]] = []

    for match in _RUST_ITEM.finditer(text):
        kind = match.group(2)
        container = ContainerInfo(name=match.group(3), kind=kind, line=line_of(text, match.start()))
        if match.group(4) == "{":
            open_index = match.end() - 1
            end = block_end(text, open_index)
            body = text[open_index + 1 : end - 1]
            if kind == "struct":
                container.fields = _rust_fields(body)
            elif kind == "trait":
                container.functions = _rust_functions(body, text, open_index + 1)
            claimed.append((open_index, end))
        outline.containers.append(container)

    for match in _RUST_IMPL.finditer(text):
        open_index = match.end() - 1
        end = block_end(text, open_index)
        type_name = match.group(2).rsplit("::", 1)[-1]
        trait_name = match.group(1)
        container = outline.container(type_name)
        if container is None:
            container = ContainerInfo(name=type_name, kind="impl", line=line_of(text, match.start()))
            outline.containers.append(container)
        if trait_name:
            base = trait_name.rsplit("::", 1)[-1]
            if base not in container.bases:
                container.bases.append(base)
        container.functions.extend(_rust_functions(text[open_index + 1 : end - 1], text, open_index + 1))
        claimed.append((open_index, end))

    for match in _RUST_FN.finditer(text):
        if any(start < match.start() < end for start, end in claimed):
            continue
        outline.functions.append(
            FunctionInfo(
                name=match.group(2),
                visibility="pub" if match.group(1) else "private",
                line=line_of(text, match.start()),
            )
        )
    return outline


def _rust_functions(body: str, text: str, offset: int) -> List[FunctionInfo]:
    functions: List[FunctionInfo] = []
    depth = 0
    last = 0
    for match in _RUST_FN.finditer(body):
        depth += body.count("{", last, match.start()) - body.count("}", last, match.start())
        last = match.start()
        if depth != 0:
            continue
        functions.append(
            FunctionInfo(
                name=match.group(2),
                visibility="pub" if match.group(1) else "private",
                line=line_of(text, offset + match.start()),
            )
        )
    return functions


def _rust_fields(body: str) -> List[FieldInfo]:
    fields: List[FieldInfo] = []
    for raw in _split_top_level(body):
        match = _RUST_FIELD.match(raw)
        if match is None:
            continue
        fields.append(
            FieldInfo(
                name=match.group(2),
                type_name=" ".join(match.group(3).split()),
                visibility="pub" if match.group(1) else "private",
            )
        )
    return fields


def _split_top_level(body: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in body:
        if char in "<({[":
            depth += 1
        elif char in ">)}]":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if "".join(current).strip():
        parts.append("".join(current))
    return parts


__all__ = [
    "ContainerInfo",
    "FieldInfo",
    "FunctionInfo",
    "SourceOutline",
    "block_end",
    "build_outline",
    "line_of",
    "strip_comments",
]
