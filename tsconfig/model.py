"""Data model for parsed tsconfig files."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


MODULE_RESOLUTION_MODES = {"node10", "node16", "nodenext", "bundler", "classic"}


@dataclass
class CompilerOptions:
    """
    The module-resolution subset of a tsconfig's ``compilerOptions``.

    All paths are absolute. ``paths_base`` is the directory that ``paths``
    substitutions are relative to: ``base_url`` when set, otherwise the
    directory of the config file that declared ``paths``.
    """

    paths_base: Path
    base_url: Optional[Path] = None
    paths: Dict[str, List[str]] = field(default_factory=dict)
    module_resolution: str = "node10"
    root_dirs: List[Path] = field(default_factory=list)
    allow_js: bool = False
    out_dir: Optional[Path] = None


@dataclass
class ProjectConfig:
    """One parsed tsconfig file and the source files it owns."""

    config_path: Path
    options: CompilerOptions
    file_names: List[Path] = field(default_factory=list)
    reference_paths: List[str] = field(default_factory=list)

    def owns(self, file_path: Path) -> bool:
        """Check whether ``file_path`` is in this config's owned file list."""
        return file_path in self.file_names


@dataclass
class ConfigSet:
    """A root tsconfig plus its directly referenced project configs."""

    root_config_path: Path
    root: ProjectConfig
    references: List[ProjectConfig] = field(default_factory=list)

    @property
    def root_options(self) -> CompilerOptions:
        return self.root.options
