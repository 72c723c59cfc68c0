"""Merge orchestration: walk a file's local import graph and concatenate it."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Set

from graph.model import ImportGraph
from tsconfig.loader import load_config_set, locate_nearest_config, select_options_for_file
from tsconfig.model import CompilerOptions
from .errors import ConfigurationNotFound
from .resolver import is_external, resolve_module_name
from .syntax import SyntaxTree, extract_specifiers, extract_statement_ranges, parse, strip_statements


logger = logging.getLogger(__name__)

OUTPUT_LANGUAGE = "typescript"

# Probed in order after the exact path
SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")

ParseFunction = Callable[[Path, str], SyntaxTree]


@dataclass
class MergeResult:
    """The merged text of one traversal and a record of what went into it."""

    text: str
    language: str = OUTPUT_LANGUAGE
    graph: ImportGraph = field(default_factory=ImportGraph)


def format_header(path: Path) -> str:
    """Provenance line inserted before each merged file's text."""
    return f"\n\n// ========== SOURCE FILE: {path} ==========\n\n"


def merge_from(start_path: Path, parse_source: ParseFunction = parse) -> MergeResult:
    """
    Merge ``start_path`` and every local file it transitively imports.

    Args:
        start_path: The file to start from.
        parse_source: Parser used for each file. Anything returning an
                      object that supports ``specifiers()`` and
                      ``statement_ranges()`` works.

    Returns:
        MergeResult with the merged text, depth-first pre-order.

    Raises:
        ConfigurationNotFound: If no tsconfig.json exists above
            ``start_path``. No source file is read in that case.
    """
    start_path = Path(start_path).resolve()

    config_path = locate_nearest_config(start_path)
    if config_path is None:
        raise ConfigurationNotFound(start_path)

    config_set = load_config_set(config_path)
    options = select_options_for_file(start_path, config_set)

    visited: Set[Path] = set()
    graph = ImportGraph()
    text = visit(start_path, visited, options, graph, parse_source)

    logger.info("Merged %d file(s) starting from %s", len(graph), start_path)
    return MergeResult(text=text, graph=graph)


def visit(
    file_path: Path,
    visited: Set[Path],
    options: CompilerOptions,
    graph: Optional[ImportGraph] = None,
    parse_source: ParseFunction = parse,
) -> str:
    """
    Merge one file and, after it, each local file it imports.

    A path already in ``visited`` contributes nothing, which stops both
    cycles and repeated inclusion. A path with no file on disk also
    contributes nothing.

    Args:
        file_path: Path to merge (an extension may be missing).
        visited: Paths already visited in this merge; updated in place.
        options: Compiler options used to resolve every specifier.
        graph: Optional traversal record; updated in place.
        parse_source: Parser used for each file.

    Returns:
        This file's header and stripped text followed by its dependencies'.
    """
    if graph is None:
        graph = ImportGraph()

    if file_path in visited:
        logger.debug("Already merged %s", file_path)
        return ""
    visited.add(file_path)

    actual_path = probe_source_file(file_path)
    if actual_path is None:
        logger.debug("No file for %s", file_path)
        graph.add_missing(file_path)
        return ""

    code = actual_path.read_bytes().decode("utf-8", errors="replace")
    tree = parse_source(actual_path, code)
    specifiers = extract_specifiers(tree)
    stripped = strip_statements(code, extract_statement_ranges(tree))

    graph.add_node(actual_path)
    merged = format_header(actual_path) + stripped

    for specifier in specifiers:
        resolved = resolve_module_name(specifier, actual_path, options)
        if resolved is None:
            graph.add_unresolved(actual_path, specifier)
            continue
        if is_external(resolved):
            logger.debug("Skipping external %r (%s)", specifier, resolved)
            graph.add_external(actual_path, specifier)
            continue

        graph.add_edge(actual_path, resolved)
        child = visit(resolved, visited, options, graph, parse_source)
        merged += "\n\n" + child

    return merged


def probe_source_file(file_path: Path) -> Optional[Path]:
    """Return ``file_path`` if it is a file, else the first existing ``file_path + ext``."""
    if file_path.is_file():
        return file_path
    for ext in SOURCE_EXTENSIONS:
        candidate = file_path.with_name(file_path.name + ext)
        if candidate.is_file():
            return candidate
    return None
