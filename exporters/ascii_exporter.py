"""ASCII tree-style exporter for merge traversals."""

from pathlib import Path
from typing import List, Optional, Set, Tuple

from graph.model import ImportGraph


# Unicode tree characters
UNICODE_BRANCH = "├── "
UNICODE_LAST = "└── "
UNICODE_VERTICAL = "│   "
UNICODE_SPACE = "    "

# ASCII fallback characters
ASCII_BRANCH = "|-- "
ASCII_LAST = "\\-- "
ASCII_VERTICAL = "|   "
ASCII_SPACE = "    "


def to_ascii(
    graph: ImportGraph,
    root: Path,
    style: str = "tree",
    include_external: bool = True,
    include_unresolved: bool = True,
) -> str:
    """
    Render a merge traversal as a dependency tree.

    The tree starts at the first merged file. Children appear in import
    order; a file that was already merged earlier is shown again with a
    ``[*]`` marker and not expanded.

    Args:
        graph: Traversal record of one merge.
        root: Directory paths are shown relative to.
        style: Output style - "tree" (Unicode) or "ascii" (pure ASCII).
        include_external: If True, list specifiers that resolved into
                          third-party code.
        include_unresolved: If True, list specifiers that did not resolve.

    Returns:
        ASCII tree string, empty if nothing was merged.
    """
    if style == "ascii":
        chars = (ASCII_BRANCH, ASCII_LAST, ASCII_VERTICAL, ASCII_SPACE)
    else:
        chars = (UNICODE_BRANCH, UNICODE_LAST, UNICODE_VERTICAL, UNICODE_SPACE)

    start = graph.root
    if start is None:
        return ""

    lines: List[str] = []
    _render_node(
        graph=graph,
        node=start,
        root=root,
        prefix="",
        is_last=True,
        chars=chars,
        expanded=set(),
        lines=lines,
        is_root=True,
        include_external=include_external,
        include_unresolved=include_unresolved,
    )
    return "\n".join(lines)


def _render_node(
    graph: ImportGraph,
    node: Path,
    root: Path,
    prefix: str,
    is_last: bool,
    chars: Tuple[str, str, str, str],
    expanded: Set[Path],
    lines: List[str],
    is_root: bool = False,
    include_external: bool = True,
    include_unresolved: bool = True,
) -> None:
    """
    Recursively render a node and its children.

    ``expanded`` holds every node already rendered with its children, so
    each file is expanded once, at its first position, as in the merged
    output.
    """
    branch, last, vertical, space = chars

    display_path = _get_display_path(node, root)
    if node not in graph:
        display_path += " [MISSING]"

    repeated = node in expanded
    marker = " [*]" if repeated else ""

    if is_root:
        lines.append(f"{display_path}{marker}")
    else:
        connector = last if is_last else branch
        lines.append(f"{prefix}{connector}{display_path}{marker}")

    if repeated:
        return
    expanded.add(node)

    children = graph.get_targets(node)
    external_refs = graph.get_external(node) if include_external else []
    unresolved_refs = graph.get_unresolved(node) if include_unresolved else []

    child_prefix = "" if is_root else prefix + (space if is_last else vertical)
    total_items = len(children) + len(external_refs) + len(unresolved_refs)
    item_index = 0

    for child in children:
        item_index += 1
        _render_node(
            graph=graph,
            node=child,
            root=root,
            prefix=child_prefix,
            is_last=(item_index == total_items),
            chars=chars,
            expanded=expanded,
            lines=lines,
            include_external=include_external,
            include_unresolved=include_unresolved,
        )

    for label, refs in (("EXTERNAL", external_refs), ("UNRESOLVED", unresolved_refs)):
        for ref in refs:
            item_index += 1
            connector = last if item_index == total_items else branch
            lines.append(f"{child_prefix}{connector}{ref} [{label}]")


def _get_display_path(node: Path, root: Optional[Path]) -> str:
    """Get the display path for a node."""
    if root is not None:
        try:
            return node.relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return str(node).replace("\\", "/")
