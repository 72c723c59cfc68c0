"""tsconfig.json discovery and parsing."""

from .loader import load_config_set, locate_nearest_config, parse_config_file, select_options_for_file
from .model import CompilerOptions, ConfigSet, ProjectConfig

__all__ = [
    "load_config_set",
    "locate_nearest_config",
    "parse_config_file",
    "select_options_for_file",
    "CompilerOptions",
    "ConfigSet",
    "ProjectConfig",
]
