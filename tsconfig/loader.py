"""
Locating and parsing tsconfig.json files.

A merge uses one root config (the nearest tsconfig.json above the starting
file) plus the configs it lists under ``references``. Referenced configs'
own references are not followed.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import json5

from scanner.errors import ConfigurationError
from .discovery import default_excludes, iter_project_files
from .model import MODULE_RESOLUTION_MODES, CompilerOptions, ConfigSet, ProjectConfig


logger = logging.getLogger(__name__)

CONFIG_FILENAME = "tsconfig.json"

# `module` kinds whose default resolution mode is classic
_CLASSIC_MODULE_KINDS = {
    "amd", "umd", "system",
    "es6", "es2015", "es2020", "es2022", "esnext",
}

_LEGACY_TARGETS = {"es3", "es5"}

# Options whose relative paths are anchored at the declaring config file
_PATH_OPTIONS = ("baseUrl", "outDir")


def locate_nearest_config(start_path: Path) -> Optional[Path]:
    """
    Walk up from the directory of ``start_path`` looking for tsconfig.json.

    Args:
        start_path: The file a merge starts from.

    Returns:
        Path to the nearest tsconfig.json, or None if no ancestor has one.
    """
    current = Path(start_path).resolve().parent
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config_set(config_path: Path) -> ConfigSet:
    """
    Parse a root tsconfig and each project it references.

    References whose target does not exist are skipped. A reference may
    name either a config file or a directory containing tsconfig.json.
    """
    config_path = Path(config_path).resolve()
    root = parse_config_file(config_path)

    references: List[ProjectConfig] = []
    for ref in root.reference_paths:
        target = _reference_target(config_path.parent, ref)
        if not target.is_file():
            logger.warning("Skipping missing project reference %s (from %s)", ref, config_path)
            continue
        references.append(parse_config_file(target))

    logger.debug(
        "Loaded %s with %d reference(s)", config_path, len(references)
    )
    return ConfigSet(root_config_path=config_path, root=root, references=references)


def select_options_for_file(file_path: Path, config_set: ConfigSet) -> CompilerOptions:
    """
    Pick the compiler options that apply to ``file_path``.

    The root config wins if it owns the file, then each reference in
    declaration order. A file owned by no config gets the root's options.
    """
    normalized = Path(file_path).resolve()

    if config_set.root.owns(normalized):
        logger.debug("%s owned by root config %s", normalized, config_set.root_config_path)
        return config_set.root.options

    for ref in config_set.references:
        if ref.owns(normalized):
            logger.debug("%s owned by referenced config %s", normalized, ref.config_path)
            return ref.options

    logger.debug("%s not owned by any config, using root options", normalized)
    return config_set.root_options


def parse_config_file(config_path: Path) -> ProjectConfig:
    """
    Parse one tsconfig file, following its ``extends`` chain.

    Args:
        config_path: Absolute path to the config file.

    Returns:
        ProjectConfig with resolved compiler options and owned files.

    Raises:
        ConfigurationError: If the file or anything it extends is unreadable
            or not valid JSON.
    """
    config_path = Path(config_path).resolve()
    raw = _read_with_extends(config_path, set())
    base_dir = config_path.parent

    compiler = raw.get("compilerOptions") or {}
    options = _build_options(compiler, base_dir)

    exclude = raw.get("exclude")
    if exclude is None:
        exclude = default_excludes(options.out_dir, base_dir)

    file_names = list(iter_project_files(
        base_dir,
        files=raw.get("files"),
        include=raw.get("include"),
        exclude=exclude,
        allow_js=options.allow_js,
    ))

    reference_paths = [
        ref["path"] for ref in raw.get("references") or []
        if isinstance(ref, dict) and ref.get("path")
    ]

    return ProjectConfig(
        config_path=config_path,
        options=options,
        file_names=file_names,
        reference_paths=reference_paths,
    )


def _read_json(config_path: Path) -> Dict[str, Any]:
    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(config_path, str(e)) from e

    try:
        data = json5.loads(content) if content.strip() else {}
    except ValueError as e:
        raise ConfigurationError(config_path, f"malformed JSON ({e})") from e

    if not isinstance(data, dict):
        raise ConfigurationError(config_path, "top-level value must be an object")
    return data


def _read_with_extends(config_path: Path, seen: Set[Path]) -> Dict[str, Any]:
    """
    Read a config and merge in everything it extends.

    Path-valued options are made absolute against the file that declared
    them before merging, so inherited values keep their original anchor.
    """
    if config_path in seen:
        raise ConfigurationError(config_path, "circular extends")
    seen = seen | {config_path}

    data = _read_json(config_path)
    base_dir = config_path.parent
    _anchor_paths(data, base_dir)

    extends = data.pop("extends", None)
    if extends is None:
        return data
    if isinstance(extends, str):
        extends = [extends]

    merged: Dict[str, Any] = {}
    for entry in extends:
        parent_path = _extends_target(base_dir, entry)
        if parent_path is None:
            raise ConfigurationError(config_path, f"cannot find extended config '{entry}'")
        parent = _read_with_extends(parent_path, seen)
        # References are never inherited
        parent.pop("references", None)
        _merge_config(merged, parent)
    _merge_config(merged, data)
    return merged


def _anchor_paths(data: Dict[str, Any], base_dir: Path) -> None:
    compiler = data.get("compilerOptions")
    if isinstance(compiler, dict):
        for key in _PATH_OPTIONS:
            if isinstance(compiler.get(key), str):
                compiler[key] = os.path.normpath(base_dir / compiler[key])
        if isinstance(compiler.get("rootDirs"), list):
            compiler["rootDirs"] = [os.path.normpath(base_dir / d) for d in compiler["rootDirs"]]
        if "paths" in compiler and "baseUrl" not in compiler:
            compiler["__pathsBase"] = str(base_dir)

    for key in ("files", "include", "exclude"):
        if isinstance(data.get(key), list):
            data[key] = [os.path.normpath(base_dir / p) for p in data[key]]


def _merge_config(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    """Overlay ``source`` onto ``target``; compilerOptions merge key by key."""
    for key, value in source.items():
        if key == "compilerOptions" and isinstance(value, dict):
            target.setdefault("compilerOptions", {}).update(value)
        else:
            target[key] = value


def _extends_target(base_dir: Path, entry: str) -> Optional[Path]:
    """Resolve an ``extends`` entry: a relative path or a package in node_modules."""
    if entry.startswith((".", "/")) or os.path.isabs(entry):
        candidate = Path(os.path.normpath(base_dir / entry))
        for path in (candidate, candidate.with_name(candidate.name + ".json")):
            if path.is_file():
                return path
        return None

    for directory in [base_dir, *base_dir.parents]:
        candidate = directory / "node_modules" / entry
        for path in (
            candidate,
            candidate.with_name(candidate.name + ".json"),
            candidate / CONFIG_FILENAME,
        ):
            if path.is_file():
                return path.resolve()
    return None


def _reference_target(base_dir: Path, ref: str) -> Path:
    target = Path(os.path.normpath(base_dir / ref))
    if target.is_dir():
        target = target / CONFIG_FILENAME
    return target


def _build_options(compiler: Dict[str, Any], base_dir: Path) -> CompilerOptions:
    base_url = compiler.get("baseUrl")
    base_url = Path(base_url) if base_url else None

    paths: Dict[str, List[str]] = {}
    for pattern, targets in (compiler.get("paths") or {}).items():
        if isinstance(targets, str):
            targets = [targets]
        paths[pattern] = list(targets)

    if base_url is not None:
        paths_base = base_url
    else:
        paths_base = Path(compiler.get("__pathsBase") or base_dir)

    out_dir = compiler.get("outDir")

    return CompilerOptions(
        paths_base=paths_base,
        base_url=base_url,
        paths=paths,
        module_resolution=_module_resolution(compiler),
        root_dirs=[Path(d) for d in compiler.get("rootDirs") or []],
        allow_js=bool(compiler.get("allowJs", False)),
        out_dir=Path(out_dir) if out_dir else None,
    )


def _module_resolution(compiler: Dict[str, Any]) -> str:
    """Effective moduleResolution, defaulted from ``module`` and ``target``."""
    explicit = str(compiler.get("moduleResolution") or "").lower()
    if explicit == "node":
        return "node10"
    if explicit in MODULE_RESOLUTION_MODES:
        return explicit

    module = str(compiler.get("module") or "").lower()
    if not module:
        target = str(compiler.get("target") or "es5").lower()
        module = "commonjs" if target in _LEGACY_TARGETS else "es2015"

    if module in ("node16", "nodenext"):
        return module
    if module == "preserve":
        return "bundler"
    if module in _CLASSIC_MODULE_KINDS:
        return "classic"
    return "node10"
