"""Record of one merge traversal: which files were merged and how they link."""

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple


class ImportGraph:
    """
    A directed import graph in traversal order.

    Nodes are merged files, in the order their text appears in the merged
    output. Edges are 'importer -> imported local file' relationships, in
    specifier order, and include edges to files that were already merged
    earlier. Specifiers that resolved into third-party code (external) or
    did not resolve at all (unresolved) are tracked separately, as are
    paths for which no file existed.
    """

    def __init__(self):
        self._nodes: List[Path] = []
        self._node_set: Set[Path] = set()
        self._edges: Dict[Path, List[Path]] = {}
        self._external: Dict[Path, List[str]] = {}
        self._unresolved: Dict[Path, List[str]] = {}
        self._missing: List[Path] = []

    @property
    def nodes(self) -> List[Path]:
        """Return merged files in merge order."""
        return list(self._nodes)

    @property
    def root(self) -> Optional[Path]:
        """The first merged file, or None if nothing was merged."""
        return self._nodes[0] if self._nodes else None

    @property
    def edges(self) -> Dict[Path, List[Path]]:
        """Return adjacency list representation of edges."""
        return {k: list(v) for k, v in self._edges.items()}

    @property
    def external(self) -> Dict[Path, List[str]]:
        """Return external references (importer -> specifiers)."""
        return {k: list(v) for k, v in self._external.items()}

    @property
    def unresolved(self) -> Dict[Path, List[str]]:
        """Return unresolved references (importer -> specifiers)."""
        return {k: list(v) for k, v in self._unresolved.items()}

    @property
    def missing(self) -> List[Path]:
        """Return visited paths that had no file on disk."""
        return list(self._missing)

    def add_node(self, node: Path) -> None:
        """Record a merged file. Adding a file twice keeps its first position."""
        if node not in self._node_set:
            self._node_set.add(node)
            self._nodes.append(node)

    def add_edge(self, source: Path, target: Path) -> None:
        """Add a directed edge from an importer to a local file it imports."""
        targets = self._edges.setdefault(source, [])
        if target not in targets:
            targets.append(target)

    def add_external(self, source: Path, specifier: str) -> None:
        """Record a specifier that resolved into third-party code."""
        specifiers = self._external.setdefault(source, [])
        if specifier not in specifiers:
            specifiers.append(specifier)

    def add_unresolved(self, source: Path, specifier: str) -> None:
        """Record a specifier that could not be resolved."""
        specifiers = self._unresolved.setdefault(source, [])
        if specifier not in specifiers:
            specifiers.append(specifier)

    def add_missing(self, path: Path) -> None:
        """Record a path for which no file was found."""
        if path not in self._missing:
            self._missing.append(path)

    def get_targets(self, source: Path) -> List[Path]:
        """Get the local files ``source`` imports, in specifier order."""
        return list(self._edges.get(source, []))

    def get_external(self, source: Path) -> List[str]:
        return list(self._external.get(source, []))

    def get_unresolved(self, source: Path) -> List[str]:
        return list(self._unresolved.get(source, []))

    def iter_edges(self) -> Iterator[Tuple[Path, Path]]:
        """Iterate over all edges as (source, target) tuples."""
        for source, targets in self._edges.items():
            for target in targets:
                yield source, target

    def iter_external(self) -> Iterator[Tuple[Path, str]]:
        for source, specifiers in self._external.items():
            for specifier in specifiers:
                yield source, specifier

    def iter_unresolved(self) -> Iterator[Tuple[Path, str]]:
        for source, specifiers in self._unresolved.items():
            for specifier in specifiers:
                yield source, specifier

    def __len__(self) -> int:
        """Return the number of merged files."""
        return len(self._nodes)

    def __contains__(self, node: Path) -> bool:
        return node in self._node_set

    def __repr__(self) -> str:
        edge_count = sum(len(t) for t in self._edges.values())
        external_count = sum(len(s) for s in self._external.values())
        unresolved_count = sum(len(s) for s in self._unresolved.values())
        return (
            f"ImportGraph(nodes={len(self._nodes)}, edges={edge_count}, "
            f"external={external_count}, unresolved={unresolved_count}, "
            f"missing={len(self._missing)})"
        )
