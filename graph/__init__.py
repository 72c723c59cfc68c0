"""Traversal record for merges."""

from .model import ImportGraph

__all__ = ["ImportGraph"]
