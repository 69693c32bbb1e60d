"""
In this subpackage, source code becomes a raw tree: a small, parser-neutral set of node kinds (see `raw_nodes`) with
named children, locations and literal values, plus the flat list of comments found in the source.

The normalizer only ever sees raw nodes. `ruby` is the parser adapter for Ruby source, built on tree-sitter.
"""

from .raw_nodes import Location, ParsedSource, RawComment, RawKind, RawNode

__all__ = ["Location", "ParsedSource", "RawComment", "RawKind", "RawNode"]
