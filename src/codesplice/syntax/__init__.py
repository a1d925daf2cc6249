"""Parsing primitives and text heuristics for script sources."""

from .javascript import Dialect, ScriptModule, dialect_for_extension, locate_syntax_error

__all__ = ["Dialect", "ScriptModule", "dialect_for_extension", "locate_syntax_error"]
