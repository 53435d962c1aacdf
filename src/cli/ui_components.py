"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Lets several commands reuse the same trees and tables.
"""

from __future__ import annotations

from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from core.domain.models import DetectorNode, MimeTypeInfo, ParserNode


def _short_name(name: str) -> str:
    return name.rsplit(".", 1)[-1] or name


def _node_label(name: str, *flags: str) -> Text:
    label = Text(_short_name(name) or "(unnamed)", style="bold cyan")
    for flag in flags:
        label.append(f" [{flag}]", style="dim")
    return label


def _add_parser(tree: Tree, node: ParserNode, show_types: bool) -> None:
    flags = [f for f, on in (("composite", node.composite), ("decorated", node.decorated)) if on]
    branch = tree.add(_node_label(node.name, *flags))
    if show_types and node.supported_types:
        branch.add(Text(", ".join(node.supported_types), style="magenta"))
    for child in node.children:
        _add_parser(branch, child, show_types)


def build_parser_tree(root: ParserNode, *, show_types: bool = False) -> Tree:
    """Tree view of the parser hierarchy reported by the server."""

    tree = Tree(Text("Parsers", style="bold yellow"))
    _add_parser(tree, root, show_types)
    return tree


def build_detector_tree(root: DetectorNode) -> Tree:
    tree = Tree(Text("Detectors", style="bold yellow"))

    def add(parent: Tree, node: DetectorNode) -> None:
        branch = parent.add(_node_label(node.name, *(["composite"] if node.composite else [])))
        for child in node.children:
            add(branch, child)

    add(tree, root)
    return tree


def build_mime_table(mime_types: dict[str, MimeTypeInfo]) -> Table:
    table = Table(title="MIME Types")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Supertype", style="white")
    table.add_column("Aliases", style="magenta")
    for name in sorted(mime_types):
        info = mime_types[name]
        table.add_row(name, info.supertype, ", ".join(info.alias))
    return table


def build_doctor_table() -> Table:
    table = Table(title="tika-d2 Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")
    return table
