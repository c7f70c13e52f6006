from .dump import dump_structure_tree
from .errors import MalformedDocumentError, TaggedParseError, UnsupportedFileError
from .layout import LayoutAnalyzer
from .markdown import MarkdownBuilder, render
from .parser import MarkdownParser, ParserConfig, Strategy, select_strategy
from .spans import SpanIndex, build_span_index
from .structure import read_structure_tree

__version__ = "0.1.0"

__all__ = [
    "MarkdownParser",
    "ParserConfig",
    "Strategy",
    "select_strategy",
    "MarkdownBuilder",
    "render",
    "LayoutAnalyzer",
    "SpanIndex",
    "build_span_index",
    "read_structure_tree",
    "dump_structure_tree",
    "TaggedParseError",
    "UnsupportedFileError",
    "MalformedDocumentError",
]
