"""MDX content model, parser and preprocessing hooks."""

from .ast import Node, NodeKind
from .compiler import ContentCompiler
from .parser import ParsedContent, parse, serialize
from .preprocess import ContentPreprocessor, PreprocessErrors, scan_usage

__all__ = [
    "ContentCompiler",
    "ContentPreprocessor",
    "Node",
    "NodeKind",
    "ParsedContent",
    "PreprocessErrors",
    "parse",
    "scan_usage",
    "serialize",
]
