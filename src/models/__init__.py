"""
Models package for inkbridge

Contains data structures and type definitions for the conversion pipeline.
"""

from .state import ProgramState, pipeline
from .directives import (
    AttributeSpec,
    DirectiveLevel,
    DirectiveName,
    DirectiveSpec,
    RegistryError,
)
from .parser import DirectiveMatch
from .export import ExportOptions, ImportedFragment, ImportResult, ParsedMarkdown

__all__ = [
    "ProgramState",
    "pipeline",
    "AttributeSpec",
    "DirectiveLevel",
    "DirectiveName",
    "DirectiveSpec",
    "RegistryError",
    "DirectiveMatch",
    "ExportOptions",
    "ImportedFragment",
    "ImportResult",
    "ParsedMarkdown",
]
