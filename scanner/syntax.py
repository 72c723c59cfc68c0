"""
Syntax analysis of TypeScript/JavaScript sources.

Only two things are read from a parsed file: the module specifiers of its
top-level import and export-from declarations, and the text spans those
declarations occupy. Everything else in the file is left alone.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree


logger = logging.getLogger(__name__)

TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
TSX = Language(tree_sitter_typescript.language_tsx())

# Extensions parsed with the TSX grammar; anything else uses plain TypeScript
TSX_EXTENSIONS = {".tsx", ".jsx", ".js", ".mjs", ".cjs"}

Range = Tuple[int, int]


@dataclass(frozen=True)
class ModuleStatement:
    """A top-level import or export-from declaration."""

    start: int
    end: int
    specifier: str


class SyntaxTree:
    """
    A parsed source file.

    Offsets are character offsets into the ``text`` the tree was built
    from, so they can be used to slice that string directly.
    """

    def __init__(self, path: Path, text: str, tree: Tree):
        self.path = path
        self.text = text
        self._tree = tree
        self._source = text.encode("utf-8")
        self._statements: Optional[List[ModuleStatement]] = None

    @property
    def has_errors(self) -> bool:
        """Whether the parser had to recover from syntax errors."""
        return self._tree.root_node.has_error

    @property
    def statements(self) -> List[ModuleStatement]:
        if self._statements is None:
            self._statements = list(self._collect())
        return self._statements

    def specifiers(self) -> List[str]:
        return [s.specifier for s in self.statements]

    def statement_ranges(self) -> List[Range]:
        return [(s.start, s.end) for s in self.statements]

    def _collect(self):
        for node in self._tree.root_node.children:
            source = _module_source(node)
            if source is None:
                continue
            yield ModuleStatement(
                start=self._offset(node.start_byte),
                end=self._offset(node.end_byte),
                specifier=_string_value(source),
            )

    def _offset(self, byte_offset: int) -> int:
        if len(self._source) == len(self.text):
            return byte_offset
        return len(self._source[:byte_offset].decode("utf-8", errors="replace"))


def parse(file_path: Path, text: str) -> SyntaxTree:
    """
    Parse a source file.

    Args:
        file_path: Path of the file, used to pick the grammar.
        text: The file's contents.

    Returns:
        SyntaxTree for the file. Syntax errors never raise; the parser
        recovers and the tree reports them through ``has_errors``.
    """
    path = Path(file_path)
    language = TSX if path.suffix.lower() in TSX_EXTENSIONS else TYPESCRIPT
    tree = Parser(language).parse(text.encode("utf-8"))
    result = SyntaxTree(path, text, tree)
    if result.has_errors:
        logger.warning("Syntax errors in %s; import detection may be incomplete", path)
    return result


def extract_specifiers(tree: SyntaxTree) -> List[str]:
    """Return every top-level import/export-from specifier, in source order."""
    return tree.specifiers()


def extract_statement_ranges(tree: SyntaxTree) -> List[Range]:
    """Return the (start, end) span of every import/export-from declaration."""
    return tree.statement_ranges()


def strip_statements(original_text: str, ranges: Sequence[Range]) -> str:
    """
    Remove the given spans from ``original_text``.

    Spans are cut from the highest offset down so earlier offsets stay
    valid. All text outside the spans is kept exactly.

    Raises:
        ValueError: If two spans overlap.
    """
    ordered = sorted(ranges)
    for (_, prev_end), (next_start, _) in zip(ordered, ordered[1:]):
        if next_start < prev_end:
            raise ValueError(f"Overlapping ranges ending at {prev_end} and starting at {next_start}")

    result = original_text
    for start, end in reversed(ordered):
        result = result[:start] + result[end:]
    return result


def _module_source(node: Node) -> Optional[Node]:
    """
    Return the specifier string node of an import/export-from declaration.

    ``export`` without ``from`` (local exports and re-exports of local
    bindings) yields None.
    """
    if node.type == "import_statement":
        source = node.child_by_field_name("source")
        if source is None:
            for child in node.children:
                # import x = require("...")
                if child.type == "import_require_clause":
                    source = child.child_by_field_name("source") or next(
                        (c for c in child.children if c.type == "string"), None
                    )
        return source
    if node.type == "export_statement":
        return node.child_by_field_name("source")
    return None


def _string_value(node: Node) -> str:
    text = node.text.decode("utf-8", errors="replace")
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1]
    return text
