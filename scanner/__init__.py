"""Scanner module for import extraction and module resolution."""

from .errors import ConfigurationError, ConfigurationNotFound, MergeError
from .resolver import is_external, resolve, resolve_module_name
from .syntax import extract_specifiers, extract_statement_ranges, parse, strip_statements

__all__ = [
    "ConfigurationError",
    "ConfigurationNotFound",
    "MergeError",
    "is_external",
    "resolve",
    "resolve_module_name",
    "extract_specifiers",
    "extract_statement_ranges",
    "parse",
    "strip_statements",
]
