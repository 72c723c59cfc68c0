"""Source file discovery for a tsconfig's files/include/exclude lists."""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Tuple

import pathspec


logger = logging.getLogger(__name__)

TS_EXTENSIONS = (".ts", ".tsx", ".d.ts", ".mts", ".cts")
JS_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs")

# Never descended into by wildcard expansion
IMPLICIT_EXCLUDE_DIRS = {"node_modules", "bower_components", "jspm_packages"}

DEFAULT_INCLUDE = ["**/*"]

_WILDCARD_CHARS = set("*?[")


def supported_extensions(allow_js: bool = False) -> Tuple[str, ...]:
    """Return the file extensions a project owns."""
    if allow_js:
        return TS_EXTENSIONS + JS_EXTENSIONS
    return TS_EXTENSIONS


def default_excludes(out_dir: Optional[Path], base_dir: Path) -> List[str]:
    """Exclude list used when a tsconfig declares none."""
    excludes = sorted(IMPLICIT_EXCLUDE_DIRS)
    if out_dir is not None:
        excludes.append(_relative_pattern(out_dir, base_dir))
    return excludes


def iter_project_files(
    base_dir: Path,
    files: Optional[Iterable[str]] = None,
    include: Optional[Iterable[str]] = None,
    exclude: Optional[Iterable[str]] = None,
    allow_js: bool = False,
) -> Iterator[Path]:
    """
    Yield the source files a tsconfig owns, without duplicates.

    Explicit ``files`` come first and are never excluded. Wildcard
    ``include`` matches follow in sorted order, minus anything matching
    ``exclude``. Patterns are relative to ``base_dir``; a pattern whose
    last component has neither a wildcard nor an extension names a
    directory and matches everything beneath it.

    Args:
        base_dir: Directory containing the tsconfig.
        files: Explicit file list.
        include: Include patterns. ``None`` means ``**/*`` unless
                 ``files`` is given.
        exclude: Exclude patterns.
        allow_js: Whether JavaScript files are owned too.

    Yields:
        Resolved absolute paths.
    """
    base_dir = base_dir.resolve()
    extensions = supported_extensions(allow_js)
    seen: Set[Path] = set()

    for name in files or []:
        path = (base_dir / name).resolve()
        if path not in seen:
            seen.add(path)
            yield path

    if include is None:
        include = [] if files is not None else DEFAULT_INCLUDE

    excluders = []
    for pattern in exclude or []:
        root, rest = _split_pattern(base_dir, pattern)
        excluders.append((root, _compile(rest) if rest else None))

    for pattern in include:
        walk_root, rest = _split_pattern(base_dir, pattern)
        if not rest:
            # A literal file path
            if walk_root.is_file() and walk_root not in seen:
                seen.add(walk_root)
                yield walk_root
            continue
        spec = _compile(rest)
        for path in _walk(walk_root):
            if path in seen or not path.name.endswith(extensions):
                continue
            if not spec.match_file(_posix_relative(path, walk_root)):
                continue
            if _is_excluded(path, excluders):
                logger.debug("Excluded %s", path)
                continue
            seen.add(path)
            yield path


def _walk(root: Path) -> Iterator[Path]:
    if not root.is_dir():
        return
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames
            if d not in IMPLICIT_EXCLUDE_DIRS and not d.startswith(".")
        )
        for filename in sorted(filenames):
            if not filename.startswith("."):
                yield Path(current) / filename


def _split_pattern(base_dir: Path, pattern: str) -> Tuple[Path, str]:
    """
    Split a pattern into a literal directory and a wildcard remainder.

    The remainder is empty for a literal file. A literal directory gets
    ``**/*`` as its remainder.
    """
    parts = pattern.replace("\\", "/").split("/")
    literal: List[str] = []
    for i, part in enumerate(parts):
        if _WILDCARD_CHARS & set(part):
            return _join(base_dir, literal), "/".join(parts[i:])
        literal.append(part)

    path = _join(base_dir, literal)
    if path.is_file():
        return path, ""
    if path.suffix and not path.is_dir():
        return path, ""
    return path, "**/*"


def _join(base_dir: Path, parts: List[str]) -> Path:
    # An absolute pattern ("/abs/src") keeps its own root
    return Path(os.path.normpath(os.path.join(base_dir, "/".join(parts))))


def _compile(rest: str) -> pathspec.PathSpec:
    # Anchored so that "*.ts" only matches directly under the walk root
    return pathspec.PathSpec.from_lines("gitignore", ["/" + rest])


def _is_excluded(
    path: Path,
    excluders: List[Tuple[Path, Optional[pathspec.PathSpec]]],
) -> bool:
    for root, spec in excluders:
        if spec is None:
            if path == root:
                return True
            continue
        try:
            relative = path.relative_to(root)
        except ValueError:
            continue
        if spec.match_file(relative.as_posix()):
            return True
    return False


def _posix_relative(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


def _relative_pattern(path: Path, base_dir: Path) -> str:
    try:
        return path.resolve().relative_to(base_dir.resolve()).as_posix()
    except ValueError:
        return os.path.relpath(path, base_dir).replace("\\", "/")
