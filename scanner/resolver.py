"""Module specifier resolution following the TypeScript compiler's rules."""

import json
import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from tsconfig.model import CompilerOptions


logger = logging.getLogger(__name__)

# Directory names that hold third-party code
EXTERNAL_DIRS = {"node_modules", "bower_components", "jspm_packages"}

# Resolution runs a TypeScript pass, then a JavaScript pass with these
TS_EXTENSIONS = (".ts", ".tsx", ".d.ts")
JS_EXTENSIONS = (".js", ".jsx")

# Specifier extension -> (TypeScript pass replacements, JavaScript pass replacements)
_SPECIFIER_EXTENSIONS = {
    ".js": ((".ts", ".tsx", ".d.ts"), (".js", ".jsx")),
    ".jsx": ((".tsx", ".d.ts"), (".jsx",)),
    ".mjs": ((".mts", ".d.mts"), (".mjs",)),
    ".cjs": ((".cts", ".d.cts"), (".cjs",)),
}

_DIRECT_EXTENSIONS = (".ts", ".tsx", ".d.ts", ".mts", ".cts", ".d.mts", ".d.cts")

_TS_ENTRY_FIELDS = ("types", "typings", "main")
_JS_ENTRY_FIELDS = ("main",)

Loader = Callable[[Path], Optional[Path]]


def resolve(specifier: str, containing_file: Path, options: CompilerOptions) -> Optional[Path]:
    """
    Resolve a specifier to a local source file.

    Args:
        specifier: The import/export specifier string.
        containing_file: The file the specifier was written in.
        options: Compiler options for the merge.

    Returns:
        Absolute path of the local file, or None when the specifier does
        not resolve or resolves into third-party code.
    """
    resolved = resolve_module_name(specifier, containing_file, options)
    if resolved is None or is_external(resolved):
        return None
    return resolved


def is_external(path: Path) -> bool:
    """Check whether a resolved path lies inside a third-party package directory."""
    return any(part in EXTERNAL_DIRS for part in Path(path).parts)


def resolve_module_name(
    specifier: str,
    containing_file: Path,
    options: CompilerOptions,
) -> Optional[Path]:
    """
    Resolve a specifier the way the compiler would, external hits included.

    The whole lookup runs twice: first for TypeScript sources and
    declarations, then for JavaScript files. ``allowJs`` does not gate
    the second pass.

    Lookup order within a pass:
    1. Relative or absolute specifiers: ``rootDirs`` (if configured), then
       the containing file's directory.
    2. Non-relative specifiers: ``paths`` mappings, then ``baseUrl``, then
       ``node_modules`` lookup (or, in classic mode, an upward directory
       walk).

    Returns:
        Resolved absolute path, or None if nothing matched.
    """
    if not specifier:
        return None

    containing_dir = Path(containing_file).parent
    hit = None
    for typescript in (True, False):
        hit = _resolve_pass(specifier, containing_dir, options, typescript)
        if hit is not None:
            break

    if hit is None:
        logger.debug("Unresolved %r from %s", specifier, containing_file)
        return None

    resolved = hit.resolve()
    logger.debug("Resolved %r from %s -> %s", specifier, containing_file, resolved)
    return resolved


def _resolve_pass(
    specifier: str,
    containing_dir: Path,
    options: CompilerOptions,
    typescript: bool,
) -> Optional[Path]:
    classic = options.module_resolution == "classic"

    def load(candidate: Path) -> Optional[Path]:
        if classic:
            return _load_file(candidate, typescript)
        return _load_file_or_directory(candidate, typescript)

    if _is_relative(specifier) or os.path.isabs(specifier):
        candidate = _normalize(containing_dir / specifier)
        hit = None
        if options.root_dirs:
            hit = _try_root_dirs(candidate, options, load)
        return hit or load(candidate)

    hit = _try_paths(specifier, options, load)
    if hit is None and options.base_url is not None:
        hit = load(_normalize(options.base_url / specifier))
    if hit is not None:
        return hit

    if classic:
        if typescript:
            return _walk_up_classic(specifier, containing_dir)
        # No upward walk for JavaScript in classic mode
        return _load_file(_normalize(containing_dir / specifier), typescript)
    return _load_from_node_modules(specifier, containing_dir, typescript)


def _is_relative(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../"))


def _normalize(path: Path) -> Path:
    return Path(os.path.normpath(path))


def _load_file(candidate: Path, typescript: bool) -> Optional[Path]:
    """
    Probe ``candidate`` as a file for one pass.

    In the TypeScript pass a specifier that already names a TypeScript
    file is taken as is. A JavaScript extension in the specifier is
    replaced by the pass's counterparts. Otherwise each of the pass's
    extensions is appended in turn.
    """
    name = candidate.name

    if typescript and name.endswith(_DIRECT_EXTENSIONS) and candidate.is_file():
        return candidate

    for spec_ext, (ts_exts, js_exts) in _SPECIFIER_EXTENSIONS.items():
        if name.endswith(spec_ext):
            stem = str(candidate)[: -len(spec_ext)]
            for ext in ts_exts if typescript else js_exts:
                path = Path(stem + ext)
                if path.is_file():
                    return path
            break

    for ext in TS_EXTENSIONS if typescript else JS_EXTENSIONS:
        path = Path(str(candidate) + ext)
        if path.is_file():
            return path
    return None


def _load_directory(directory: Path, typescript: bool) -> Optional[Path]:
    """Probe a directory through its package.json entry fields, then index files."""
    if not directory.is_dir():
        return None

    package_json = directory / "package.json"
    if package_json.is_file():
        fields = _TS_ENTRY_FIELDS if typescript else _JS_ENTRY_FIELDS
        for entry in _package_entries(package_json, fields):
            target = _normalize(directory / entry)
            hit = _load_file(target, typescript)
            if hit is None and target.is_dir():
                hit = _load_file(target / "index", typescript)
            if hit is not None:
                return hit

    return _load_file(directory / "index", typescript)


def _load_file_or_directory(candidate: Path, typescript: bool) -> Optional[Path]:
    return _load_file(candidate, typescript) or _load_directory(candidate, typescript)


def _package_entries(package_json: Path, fields: Tuple[str, ...]) -> List[str]:
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug("Ignoring unreadable %s: %s", package_json, e)
        return []
    if not isinstance(data, dict):
        return []
    return [data[key] for key in fields if isinstance(data.get(key), str)]


def _try_paths(specifier: str, options: CompilerOptions, load: Loader) -> Optional[Path]:
    """Apply the ``paths`` mapping whose pattern best matches ``specifier``."""
    match = _match_paths_pattern(specifier, list(options.paths))
    if match is None:
        return None

    pattern, captured = match
    for substitution in options.paths[pattern]:
        target = substitution.replace("*", captured, 1) if captured is not None else substitution
        hit = load(_normalize(options.paths_base / target))
        if hit is not None:
            logger.debug("Path mapping %r matched %r via %r", pattern, specifier, substitution)
            return hit
    return None


def _match_paths_pattern(
    specifier: str,
    patterns: List[str],
) -> Optional[Tuple[str, Optional[str]]]:
    """
    Find the pattern matching ``specifier``.

    An exact key wins. Among wildcard keys, the one with the longest
    prefix before ``*`` wins.

    Returns:
        (pattern, text captured by ``*``) or None. The captured text is
        None for an exact match.
    """
    if specifier in patterns:
        return specifier, None

    best: Optional[Tuple[str, Optional[str]]] = None
    best_prefix = -1
    for pattern in patterns:
        if pattern.count("*") != 1:
            continue
        prefix, suffix = pattern.split("*")
        if len(specifier) < len(prefix) + len(suffix):
            continue
        if specifier.startswith(prefix) and specifier.endswith(suffix) and len(prefix) > best_prefix:
            best_prefix = len(prefix)
            best = (pattern, specifier[len(prefix): len(specifier) - len(suffix)])
    return best


def _try_root_dirs(candidate: Path, options: CompilerOptions, load: Loader) -> Optional[Path]:
    """
    Treat ``rootDirs`` as one merged virtual directory.

    The part of ``candidate`` below its longest matching root dir is
    tried under every root dir, the matching one first.
    """
    matched: Optional[Path] = None
    for root_dir in options.root_dirs:
        if _is_under(candidate, root_dir) and (matched is None or len(root_dir.parts) > len(matched.parts)):
            matched = root_dir
    if matched is None:
        return None

    suffix = candidate.relative_to(matched)
    for root_dir in [matched] + [d for d in options.root_dirs if d != matched]:
        hit = load(_normalize(root_dir / suffix))
        if hit is not None:
            return hit
    return None


def _load_from_node_modules(
    specifier: str,
    start_dir: Path,
    typescript: bool,
) -> Optional[Path]:
    """Look the specifier up in each ancestor's node_modules; @types only in the TypeScript pass."""
    for directory in [start_dir, *start_dir.parents]:
        if directory.name == "node_modules":
            continue
        modules = directory / "node_modules"
        if not modules.is_dir():
            continue
        hit = _load_file_or_directory(_normalize(modules / specifier), typescript)
        if hit is None and typescript:
            hit = _load_file_or_directory(modules / "@types" / _types_package_name(specifier), typescript)
        if hit is not None:
            return hit
    return None


def _walk_up_classic(specifier: str, start_dir: Path) -> Optional[Path]:
    for directory in [start_dir, *start_dir.parents]:
        hit = _load_file(_normalize(directory / specifier), True)
        if hit is not None:
            return hit
    return None


def _types_package_name(specifier: str) -> str:
    """Map a package name to its DefinitelyTyped name (``@scope/pkg`` -> ``scope__pkg``)."""
    if specifier.startswith("@") and "/" in specifier:
        scope, rest = specifier[1:].split("/", 1)
        return f"{scope}__{rest}"
    return specifier


def _is_under(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False
