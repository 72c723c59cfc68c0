"""JSON exporter for merge results (machine-friendly manifest)."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from scanner.builder import MergeResult


def to_json(
    result: MergeResult,
    root: Path,
    indent: int = 2,
    include_content: bool = False,
) -> str:
    """
    Describe a merge as JSON.

    Args:
        result: The merge to describe.
        root: Directory paths are made relative to.
        indent: JSON indentation level.
        include_content: If True, include the merged text itself.

    Returns:
        JSON object with ``language``, ``files`` (merge order), ``edges``,
        ``external``, ``unresolved`` and ``missing``.
    """
    graph = result.graph

    files: List[str] = [_get_path_str(node, root) for node in graph.nodes]

    edges: List[Dict[str, Any]] = []
    for source, target in graph.iter_edges():
        edges.append({
            "source": _get_path_str(source, root),
            "target": _get_path_str(target, root),
        })

    external: List[Dict[str, Any]] = []
    for source, specifier in graph.iter_external():
        external.append({"source": _get_path_str(source, root), "specifier": specifier})

    unresolved: List[Dict[str, Any]] = []
    for source, specifier in graph.iter_unresolved():
        unresolved.append({"source": _get_path_str(source, root), "specifier": specifier})

    data: Dict[str, Any] = {
        "language": result.language,
        "files": files,
        "edges": edges,
        "external": external,
        "unresolved": unresolved,
        "missing": [_get_path_str(path, root) for path in graph.missing],
    }
    if include_content:
        data["content"] = result.text

    return json.dumps(data, indent=indent)


def _get_path_str(path: Path, root: Optional[Path]) -> str:
    """Get the string representation of a path."""
    if root is not None:
        try:
            return path.relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return str(path).replace("\\", "/")
