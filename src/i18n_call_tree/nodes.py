"""
The normalized tree. This is what the normalizer produces and what a key auditing tool walks afterwards.

Every step of the normalizer returns a `Result`, which is exactly one of:

    * a structural `NormalizedNode` (module, class, def, block, lambda, call, translation call, interpolated string)
    * a `Primitive` (string, symbol, integer, decimal, mapping or sequence value)
    * a `NodeList`, an ordered group of results with no node of its own (eg the calls found in an assignment)
    * None, when there is nothing to report (eg the `private` visibility toggle)

Callers branch on the result class rather than guessing at its shape.
"""
import enum
from dataclasses import dataclass
from dataclasses import field
from dataclasses import fields
from typing import Any
from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Mapping
from typing import Optional
from typing import Tuple
from typing import Union

from typing_extensions import Self

from i18n_call_tree.raw.raw_nodes import RawNode

__all__ = [
    "NormalizedNode",
    "FrozenMapping",
    "Primitive",
    "PrimitiveKind",
    "NodeList",
    "Result",
    "ModuleNode",
    "ClassNode",
    "DefNode",
    "BlockNode",
    "LambdaNode",
    "CallNode",
    "TranslationCall",
    "InterpolatedString",
    "translation_calls",
    "dump",
]


class NormalizedNode:
    """Base class of every normalized variant"""


class FrozenMapping(Mapping["Result", "Result"]):
    """
    Read only mapping held by a mapping Primitive. Unlike a dict it is hashable, so a hash literal can itself be the
    key of another hash (`{ { a: 1 } => "x" }`)
    """

    def __init__(self, items: Optional[Mapping["Result", "Result"]] = None) -> None:
        self._items: Dict["Result", "Result"] = dict(items or {})

    def __getitem__(self, key: "Result") -> "Result":
        return self._items[key]

    def __iter__(self) -> Iterator["Result"]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        return hash(frozenset(self._items.items()))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._items!r})"


class PrimitiveKind(enum.Enum):
    STRING = "string"
    SYMBOL = "symbol"
    INTEGER = "integer"
    DECIMAL = "decimal"
    MAPPING = "mapping"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class Primitive(NormalizedNode):
    kind: PrimitiveKind
    value: Any

    @classmethod
    def string(cls, value: str) -> Self:
        return cls(PrimitiveKind.STRING, value)

    @classmethod
    def symbol(cls, value: str) -> Self:
        return cls(PrimitiveKind.SYMBOL, value)

    @classmethod
    def integer(cls, value: int) -> Self:
        return cls(PrimitiveKind.INTEGER, value)

    @classmethod
    def decimal(cls, value: float) -> Self:
        return cls(PrimitiveKind.DECIMAL, value)

    @classmethod
    def mapping(cls, value: Mapping["Result", "Result"]) -> Self:
        return cls(PrimitiveKind.MAPPING, FrozenMapping(value))

    @classmethod
    def sequence(cls, value: Iterable["Result"]) -> Self:
        return cls(PrimitiveKind.SEQUENCE, tuple(value))

    @property
    def is_mapping(self) -> bool:
        return self.kind is PrimitiveKind.MAPPING

    def to_python(self) -> Any:
        """Plain Python value, with nested primitives converted too. Symbols become strings"""
        if self.kind is PrimitiveKind.MAPPING:
            return {_to_python_key(k): _to_python(v) for k, v in self.value.items()}
        if self.kind is PrimitiveKind.SEQUENCE:
            return [_to_python(v) for v in self.value]
        return self.value


@dataclass(frozen=True)
class NodeList:
    """An ordered group of results that does not form a node of its own"""

    items: Tuple["Result", ...] = ()

    def __iter__(self) -> Iterator["Result"]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> "Result":
        return self.items[index]


Result = Union[NormalizedNode, NodeList, None]


def _to_python(value: "Result") -> Any:
    if isinstance(value, Primitive):
        return value.to_python()
    if isinstance(value, NodeList):
        return [_to_python(v) for v in value]
    return value


def _freeze(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, dict):
        return tuple((_freeze(k), _freeze(v)) for k, v in value.items())
    return value


def _to_python_key(value: "Result") -> Any:
    """Like _to_python(), with lists and dicts turned into tuples so the value can be a dict key"""
    return _freeze(_to_python(value))


# Structural nodes compare by identity. Use `dump()` to compare the shape of two trees
@dataclass(eq=False)
class ModuleNode(NormalizedNode):
    node: RawNode = field(repr=False)
    child_nodes: List["Result"] = field(default_factory=list)


@dataclass(eq=False)
class ClassNode(NormalizedNode):
    node: RawNode = field(repr=False)
    child_nodes: List["Result"] = field(default_factory=list)

    def add_child_node(self, child: "Result") -> None:
        self.child_nodes.append(child)


@dataclass(eq=False)
class DefNode(NormalizedNode):
    node: RawNode = field(repr=False)
    calls: List["Result"] = field(default_factory=list)
    private: bool = False

    @property
    def name(self) -> Optional[str]:
        return self.node.value


@dataclass(eq=False)
class BlockNode(NormalizedNode):
    node: RawNode = field(repr=False)
    calls: List["Result"] = field(default_factory=list)


@dataclass(eq=False)
class LambdaNode(NormalizedNode):
    node: RawNode = field(repr=False)
    calls: List["Result"] = field(default_factory=list)


@dataclass(eq=False)
class CallNode(NormalizedNode):
    node: RawNode = field(repr=False)
    comment_translations: Optional[List["TranslationCall"]] = None

    @property
    def name(self) -> Optional[str]:
        return self.node.value


@dataclass(eq=False)
class TranslationCall(NormalizedNode):
    node: RawNode = field(repr=False)
    key: "Result" = None
    """The first positional argument. Usually a string or symbol Primitive, None when the call has no arguments"""
    receiver: "Result" = None
    options: Dict["Result", "Result"] = field(default_factory=dict)
    comment_translations: Optional[List["TranslationCall"]] = None

    @property
    def name(self) -> str:
        return self.node.value

    @property
    def key_value(self) -> Optional[str]:
        """The key as a plain string, when it could be resolved statically"""
        if isinstance(self.key, Primitive) and self.key.kind in (PrimitiveKind.STRING, PrimitiveKind.SYMBOL):
            return self.key.value
        return None

    def options_to_python(self) -> Dict[Any, Any]:
        return {_to_python_key(k): _to_python(v) for k, v in self.options.items()}


@dataclass(eq=False)
class InterpolatedString(NormalizedNode):
    node: RawNode = field(repr=False)
    parts: List["Result"] = field(default_factory=list)


def _children(result: "Result") -> Iterator["Result"]:
    """Direct children of a result, in source order. Comment translations come before the node's own children"""
    if isinstance(result, NodeList):
        yield from result
    elif isinstance(result, Primitive):
        if result.kind is PrimitiveKind.MAPPING:
            for k, v in result.value.items():
                yield k
                yield v
        elif result.kind is PrimitiveKind.SEQUENCE:
            yield from result.value
    elif isinstance(result, (ModuleNode, ClassNode)):
        yield from result.child_nodes
    elif isinstance(result, (DefNode, BlockNode, LambdaNode)):
        yield from result.calls
    elif isinstance(result, CallNode):
        yield from result.comment_translations or ()
    elif isinstance(result, TranslationCall):
        yield from result.comment_translations or ()
        yield result.receiver
        yield result.key
        for k, v in result.options.items():
            yield k
            yield v
    elif isinstance(result, InterpolatedString):
        yield from result.parts


def translation_calls(result: "Result") -> Iterator[TranslationCall]:
    """
    Walk the given result and yield every TranslationCall found, whether produced directly from the source or attached
    to a node as a comment translation
    """
    stack = [result]
    while stack:
        current = stack.pop()
        if isinstance(current, TranslationCall):
            yield current
        stack.extend(reversed(list(_children(current))))


def dump(result: "Result") -> Any:
    """
    Plain nested representation of a result, leaving out references to raw nodes. Two trees normalized from the same
    input dump to equal values.
    """
    if result is None:
        return None
    if isinstance(result, NodeList):
        return [dump(r) for r in result]
    if isinstance(result, Primitive):
        if result.kind is PrimitiveKind.MAPPING:
            return (result.kind.value, [(dump(k), dump(v)) for k, v in result.value.items()])
        if result.kind is PrimitiveKind.SEQUENCE:
            return (result.kind.value, [dump(v) for v in result.value])
        return (result.kind.value, result.value)

    dumped: Dict[str, Any] = {}
    for f in fields(result):
        value = getattr(result, f.name)
        if f.name == "node":
            dumped["kind"] = value.kind.value
            dumped["line"] = value.line
            dumped["name"] = value.value
        elif isinstance(value, list):
            dumped[f.name] = [dump(v) for v in value]
        elif isinstance(value, dict):
            dumped[f.name] = [(dump(k), dump(v)) for k, v in value.items()]
        else:
            dumped[f.name] = dump(value) if isinstance(value, (NormalizedNode, NodeList)) else value
    return (type(result).__name__, dumped)
