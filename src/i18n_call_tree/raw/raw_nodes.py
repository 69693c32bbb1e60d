"""
The raw tree is the parser-neutral input of the normalizer. A parser adapter (see `i18n_call_tree.raw.ruby`) turns
whatever its parser produces into `RawNode` instances so that the normalizer never has to know about the parser.

Children are kept in named fields, in source order. The field names used for each kind:

    ==========================  ==========================================================
    kind                        fields
    ==========================  ==========================================================
    PROGRAM                     statements
    STATEMENTS                  body (sequence)
    EMBEDDED_STATEMENTS         statements
    MODULE                      constant_path, body
    CLASS                       constant_path, superclass, body
    LOCAL_VARIABLE_WRITE        value                     (value attribute: variable name)
    INSTANCE_VARIABLE_WRITE     value                     (value attribute: variable name)
    LOCAL_VARIABLE_TARGET       -                         (value attribute: variable name)
    MULTI_WRITE                 lefts (sequence), value
    DEF                         body                      (value attribute: method name)
    IF / ELSIF                  predicate, statements, subsequent
    ELSE                        statements
    AND / OR                    left, right
    LAMBDA                      body
    BLOCK                       body
    CALL                        receiver, arguments, block  (value attribute: method name)
    ASSOC                       key, value
    INTERPOLATED_STRING         parts (sequence)
    ARGUMENTS                   arguments (sequence)
    ARRAY                       elements (sequence)
    KEYWORD_HASH / HASH         elements (sequence)
    OPAQUE                      children (sequence)       (value attribute: the parser's own type name)
    ==========================  ==========================================================

Leaves (SYMBOL, STRING, INTEGER, DECIMAL, CONSTANT_READ) carry their literal in the `value` attribute.
"""
import enum
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Iterator
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Union

__all__ = ["RawKind", "Location", "RawNode", "RawComment", "RawChild", "ParsedSource"]


class RawKind(enum.Enum):
    PROGRAM = "program"
    STATEMENTS = "statements"
    EMBEDDED_STATEMENTS = "embedded_statements"
    MODULE = "module"
    CLASS = "class"
    LOCAL_VARIABLE_WRITE = "local_variable_write"
    INSTANCE_VARIABLE_WRITE = "instance_variable_write"
    LOCAL_VARIABLE_TARGET = "local_variable_target"
    MULTI_WRITE = "multi_write"
    DEF = "def"
    IF = "if"
    ELSIF = "elsif"
    ELSE = "else"
    AND = "and"
    OR = "or"
    LAMBDA = "lambda"
    BLOCK = "block"
    CALL = "call"
    ASSOC = "assoc"
    SYMBOL = "symbol"
    STRING = "string"
    INTERPOLATED_STRING = "interpolated_string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    CONSTANT_READ = "constant_read"
    ARGUMENTS = "arguments"
    ARRAY = "array"
    KEYWORD_HASH = "keyword_hash"
    HASH = "hash"
    OPAQUE = "opaque"
    # Any parser node that has no dedicated kind. Only its children matter to us


@dataclass(frozen=True)
class Location:
    start_line: int
    # 1-based
    start_column: int
    # 0-based
    end_line: int
    end_column: int

    @classmethod
    def at_line(cls, line: int) -> "Location":
        return cls(line, 0, line, 0)


RawChild = Union["RawNode", Sequence["RawNode"], None]


@dataclass(frozen=True)
class RawNode:
    """A single node of the raw tree. Instances never change once built"""

    kind: RawKind
    location: Location
    fields: Mapping[str, RawChild] = field(default_factory=dict)
    """Named children. Each value is a node, a sequence of nodes, or None when the child is absent"""

    value: Any = None
    """Literal value for leaves, or the name for calls, definitions and variables"""

    text: str = field(default="", compare=False)
    """The source text this node was parsed from (may be empty for synthesized nodes)"""

    @property
    def line(self) -> int:
        return self.location.start_line

    def child(self, name: str) -> Optional["RawNode"]:
        """Return the named child (or None). Raises TypeError if the field holds a sequence"""
        value = self.fields.get(name)
        if value is None or isinstance(value, RawNode):
            return value
        raise TypeError(f"Field '{name}' of {self.kind.value} node holds a sequence, use children()")

    def children(self, name: str) -> Tuple["RawNode", ...]:
        """Return the named children as a tuple. A single node is returned as a one-element tuple"""
        value = self.fields.get(name)
        if value is None:
            return ()
        if isinstance(value, RawNode):
            return (value,)
        return tuple(value)

    def child_nodes(self) -> Iterator["RawNode"]:
        """Every non-null child, in field order"""
        for name in self.fields:
            yield from self.children(name)


@dataclass(frozen=True)
class RawComment:
    text: str
    # Full comment text, including the comment marker
    location: Location

    @property
    def line(self) -> int:
        return self.location.start_line


@dataclass(frozen=True)
class ParsedSource:
    """What a parser adapter hands over: the whole-file tree and every comment in the file"""

    tree: RawNode
    comments: Tuple[RawComment, ...] = ()
