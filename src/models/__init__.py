"""
Models package for scriptlet

Contains data structures and type definitions for the render pipeline.
"""

from .state import RenderState, pipeline
from .directives import DirectiveSpec, DirectiveCategory, STRING_ARGUMENT
from .segments import DelimiterSet, EncodingMode, ScriptExpression, Segment, SegmentKind
from .units import Artifact, CacheEntry, CompileOptions, Diagnostic, ParsedUnit, PartialRef

__all__ = [
    "RenderState",
    "pipeline",
    "DirectiveSpec",
    "DirectiveCategory",
    "STRING_ARGUMENT",
    "DelimiterSet",
    "EncodingMode",
    "ScriptExpression",
    "Segment",
    "SegmentKind",
    "Artifact",
    "CacheEntry",
    "CompileOptions",
    "Diagnostic",
    "ParsedUnit",
    "PartialRef",
]
