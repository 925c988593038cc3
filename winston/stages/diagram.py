"""Diagram stages: Graphviz DOT and Mermaid renderings of a source outline."""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..logging import get_logger
from ..models import Language, StageName
from .base import Stage
from .outline import ContainerInfo, SourceOutline, build_outline


def _dot_id(*parts: str) -> str:
    return '"' + "_".join(parts).replace('"', "'") + '"'


def _dot_label(text: str) -> str:
    return '"' + text.replace('"', "'") + '"'


def render_dot(outline: SourceOutline) -> str:
    lines = ["digraph G {", "  rankdir=LR;", '  node [fontname="Arial"];']
    for container in outline.containers:
        node = _dot_id(container.name)
        lines.append(
            f"  {node} [label={_dot_label(container.name)}, shape=box, style=filled, fillcolor=lightblue];"
        )
        for function in container.functions:
            func_node = _dot_id(container.name, function.name)
            style = "filled" if function.name == "constructor" else "solid"
            lines.append(
                f"  {func_node} [label={_dot_label(f'{function.name}({function.visibility})')}, "
                f"shape=ellipse, style={style}, fillcolor=lightgreen];"
            )
            lines.append(f"  {node} -> {func_node};")
            for modifier in function.modifiers:
                mod_node = _dot_id(container.name, "mod", modifier)
                lines.append(
                    f"  {mod_node} [label={_dot_label(f'modifier: {modifier}')}, "
                    "shape=hexagon, style=filled, fillcolor=lightyellow];"
                )
                lines.append(f"  {func_node} -> {mod_node};")
        for field in container.fields:
            field_node = _dot_id(container.name, "state", field.name)
            lines.append(
                f"  {field_node} [label={_dot_label(f'{field.name}: {field.type_name}')}, "
                'shape=box, style="rounded,filled", fillcolor=lightgrey];'
            )
            lines.append(f"  {node} -> {field_node} [style=dashed];")
        for base in container.bases:
            lines.append(f'  {node} -> {_dot_id(base)} [style=bold, label="inherits"];')
    lines.append("}")
    return "\n".join(lines) + "\n"


def _mermaid_member_prefix(visibility: str) -> str:
    if visibility in {"public", "external", "pub"}:
        return "+"
    if visibility == "internal":
        return "#"
    return "-"


def _mermaid_class(container: ContainerInfo) -> List[str]:
    lines = [f"  class {container.name} {{"]
    if container.kind not in {"contract", "struct", "impl"}:
        lines.append(f"    <<{container.kind}>>")
    for field in container.fields:
        type_name = field.type_name.replace("<", "~").replace(">", "~")
        lines.append(f"    {_mermaid_member_prefix(field.visibility)}{type_name} {field.name}")
    for function in container.functions:
        lines.append(f"    {_mermaid_member_prefix(function.visibility)}{function.name}()")
    lines.append("  }")
    return lines


def render_mermaid(outline: SourceOutline, title: str) -> str:
    lines = ["classDiagram"]
    for container in outline.containers:
        lines.extend(_mermaid_class(container))
    for container in outline.containers:
        for base in container.bases:
            arrow = "<|.." if outline.language is Language.RUST else "<|--"
            lines.append(f"  {base} {arrow} {container.name}")
    if outline.functions:
        lines.append("  class module {")
        lines.append("    <<module>>")
        for function in outline.functions:
            lines.append(f"    {_mermaid_member_prefix(function.visibility)}{function.name}()")
        lines.append("  }")
    body = "\n".join(lines)
    return f"# {title}\n\n```mermaid\n{body}\n```\n"


class SolidityDiagramStage(Stage):
    """Writes ``<file>.dot`` and ``<file>.mermaid.md`` for a Solidity source."""

    name = StageName.DIAGRAM
    language = Language.SOLIDITY

    def __init__(self) -> None:
        self.logger = get_logger("stages.diagram")

    def run(self, path: Path, output_dir: Path) -> List[Path]:
        outline = build_outline(self.read_source(path), self.language)
        file_name = Path(path).name
        self.logger.debug("Outline for %s has %d contracts", file_name, len(outline.containers))
        dot_path = self.write_artifact(output_dir, f"{file_name}.dot", render_dot(outline))
        mermaid_path = self.write_artifact(
            output_dir,
            f"{file_name}.mermaid.md",
            render_mermaid(outline, f"Contract diagram: {file_name}"),
        )
        return [dot_path, mermaid_path]


class RustDiagramStage(Stage):
    """Writes ``<file>.rust-diagram.md`` for a Rust source."""

    name = StageName.DIAGRAM
    language = Language.RUST

    def __init__(self) -> None:
        self.logger = get_logger("stages.diagram")

    def run(self, path: Path, output_dir: Path) -> List[Path]:
        outline = build_outline(self.read_source(path), self.language)
        file_name = Path(path).name
        self.logger.debug("Outline for %s has %d items", file_name, len(outline.containers))
        return [
            self.write_artifact(
                output_dir,
                f"{file_name}.rust-diagram.md",
                render_mermaid(outline, f"Rust code diagram: {file_name}"),
            )
        ]
