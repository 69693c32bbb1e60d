"""
Ruby source -> raw tree, using tree-sitter and the tree-sitter-ruby grammar.

tree-sitter produces a concrete syntax tree. `RubyTreeConverter` walks it and emits the much smaller set of raw kinds
the normalizer understands. Node types with no dedicated kind become OPAQUE nodes which keep their named children, so
nothing underneath them is lost.
"""
import re
from typing import Any
from typing import Callable
from typing import ClassVar
from typing import FrozenSet
from typing import Iterable
from typing import List
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Union

import tree_sitter
import tree_sitter_ruby

from i18n_call_tree.errors import SourceParseError
from i18n_call_tree.raw.raw_nodes import Location
from i18n_call_tree.raw.raw_nodes import ParsedSource
from i18n_call_tree.raw.raw_nodes import RawChild
from i18n_call_tree.raw.raw_nodes import RawComment
from i18n_call_tree.raw.raw_nodes import RawKind
from i18n_call_tree.raw.raw_nodes import RawNode

__all__ = ["ParsedSource", "RubyTreeConverter", "parse", "collect_comments"]

RUBY_LANGUAGE = tree_sitter.Language(tree_sitter_ruby.language())

_SIMPLE_ESCAPES: Mapping[str, str] = {
    "n": "\n",
    "t": "\t",
    "s": " ",
    "r": "\r",
    "e": "\x1b",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\n": "",
}
"""Single character escapes. Any other escaped character stands for itself"""

_ESCAPE = re.compile(
    r"\\(?:u\{([0-9a-fA-F ]+)\}|u([0-9a-fA-F]{4})|x([0-9a-fA-F]{1,2})|([0-7]{1,3})|(.))",
    re.DOTALL,
)


def parse(source: Union[str, bytes], filename: str = "<unknown>") -> ParsedSource:
    """
    Parse Ruby source into a raw tree plus the flat list of its comments. Raises SourceParseError if tree-sitter
    reports any syntax error in the source
    """
    if isinstance(source, str):
        source = source.encode("utf8")

    parser = tree_sitter.Parser(RUBY_LANGUAGE)
    root = parser.parse(source).root_node
    if root.has_error:
        raise SourceParseError(filename, _first_error_line(root))

    return ParsedSource(RubyTreeConverter().convert(root), tuple(collect_comments(root)))


def collect_comments(root: tree_sitter.Node) -> List[RawComment]:
    """Every comment in the tree, in source order"""
    comments: List[RawComment] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "comment":
            comments.append(RawComment(_text(node), _location(node)))
        else:
            stack.extend(reversed(node.children))

    return comments


def _first_error_line(root: tree_sitter.Node) -> Optional[int]:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node.start_point[0] + 1
        stack.extend(reversed(node.children))
    return None


def _location(node: tree_sitter.Node) -> Location:
    return Location(node.start_point[0] + 1, node.start_point[1], node.end_point[0] + 1, node.end_point[1])


def _text(node: tree_sitter.Node) -> str:
    text = node.text
    return text.decode("utf8") if text is not None else ""


def _named(node: tree_sitter.Node) -> List[tree_sitter.Node]:
    return [c for c in node.named_children if c.type != "comment"]


def _ruby_int(text: str) -> int:
    digits = text.replace("_", "").lower()
    if len(digits) > 1 and digits.startswith("0") and digits[1].isdigit():
        # Ruby reads a leading zero as octal
        return int(digits, 8)
    if digits.startswith("0d"):
        return int(digits[2:])
    return int(digits, 0)


def _unescape(text: str) -> str:
    """Decode the escape sequences of a double quoted Ruby string (`\\n`, `\\u00e9`, `\\u{1F600}`, `\\x41`, `\\101`)"""

    def replace(match: "re.Match[str]") -> str:
        braced, code_point, hexadecimal, octal, char = match.groups()
        if braced is not None:
            return "".join(chr(int(c, 16)) for c in braced.split())
        if code_point is not None:
            return chr(int(code_point, 16))
        if hexadecimal is not None:
            return chr(int(hexadecimal, 16))
        if octal is not None:
            return chr(int(octal, 8))
        return _SIMPLE_ESCAPES.get(char, char)

    return _ESCAPE.sub(replace, text)


class RubyTreeConverter:
    """
    Convert a tree-sitter-ruby tree into raw nodes. Each `convert_<type>` method handles one tree-sitter node type;
    types without a method go through `convert_opaque`
    """

    STATEMENT_CONTAINERS: ClassVar[FrozenSet[str]] = frozenset(
        {"program", "body_statement", "block_body", "then", "else", "parenthesized_statements", "begin", "ensure"}
    )
    """Node types whose named children are statements"""

    PARAMETER_TYPES: ClassVar[FrozenSet[str]] = frozenset(
        {"method_parameters", "parameters", "block_parameters", "lambda_parameters"}
    )

    def convert(self, node: Optional[tree_sitter.Node]) -> Optional[RawNode]:
        if node is None:
            return None
        method: Callable[[tree_sitter.Node], RawNode] = getattr(self, f"convert_{node.type}", self.convert_opaque)
        return method(node)

    def convert_all(self, nodes: Iterable[tree_sitter.Node]) -> Tuple[RawNode, ...]:
        return tuple(n for n in (self.convert(c) for c in nodes) if n is not None)

    def convert_statement(self, node: tree_sitter.Node) -> Optional[RawNode]:
        """A bare identifier used as a statement is a method call with no receiver and no arguments (eg `private`)"""
        if node.type == "identifier":
            return self.bare_call(node)
        return self.convert(node)

    def bare_call(self, node: tree_sitter.Node) -> RawNode:
        return RawNode(RawKind.CALL, _location(node), {}, value=_text(node), text=_text(node))

    def make(
        self,
        kind: RawKind,
        node: tree_sitter.Node,
        fields: Optional[Mapping[str, RawChild]] = None,
        value: Any = None,
    ) -> RawNode:
        return RawNode(kind, _location(node), dict(fields or {}), value=value, text=_text(node))

    def statements(self, anchor: tree_sitter.Node, children: Sequence[tree_sitter.Node]) -> RawNode:
        body = tuple(n for n in (self.convert_statement(c) for c in children) if n is not None)
        return self.make(RawKind.STATEMENTS, anchor, {"body": body})

    def body_of(self, node: tree_sitter.Node, *skip_fields: str) -> Optional[RawNode]:
        """
        Find the statements making up the body of a module, class, method or block. Depending on the grammar
        version, the body is either a `body` field or just the remaining named children of the node.
        """
        body = node.child_by_field_name("body")
        if body is not None:
            if body.type in self.STATEMENT_CONTAINERS:
                return self.statements(body, _named(body))
            # Endless method definitions have a bare expression as body
            return self.statements(body, [body])

        skipped = [c for c in (node.child_by_field_name(f) for f in skip_fields) if c is not None]
        children = [c for c in _named(node) if c not in skipped and c.type not in self.PARAMETER_TYPES]
        if not children:
            return None
        if len(children) == 1 and children[0].type in self.STATEMENT_CONTAINERS:
            return self.statements(children[0], _named(children[0]))
        return self.statements(node, children)

    def convert_program(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.PROGRAM, node, {"statements": self.statements(node, _named(node))})

    def convert_body_statement(self, node: tree_sitter.Node) -> RawNode:
        return self.statements(node, _named(node))

    convert_block_body = convert_body_statement
    convert_parenthesized_statements = convert_body_statement
    convert_then = convert_body_statement

    def convert_module(self, node: tree_sitter.Node) -> RawNode:
        return self.make(
            RawKind.MODULE,
            node,
            {"constant_path": self.convert(node.child_by_field_name("name")), "body": self.body_of(node, "name")},
        )

    def convert_class(self, node: tree_sitter.Node) -> RawNode:
        return self.make(
            RawKind.CLASS,
            node,
            {
                "constant_path": self.convert(node.child_by_field_name("name")),
                "superclass": self.convert(node.child_by_field_name("superclass")),
                "body": self.body_of(node, "name", "superclass"),
            },
        )

    def convert_method(self, node: tree_sitter.Node) -> RawNode:
        name = node.child_by_field_name("name")
        return self.make(
            RawKind.DEF,
            node,
            {"body": self.body_of(node, "name", "parameters", "object")},
            value=_text(name) if name is not None else None,
        )

    convert_singleton_method = convert_method

    def _conditional(self, kind: RawKind, node: tree_sitter.Node) -> RawNode:
        consequence = node.child_by_field_name("consequence")
        return self.make(
            kind,
            node,
            {
                "predicate": self.convert(node.child_by_field_name("condition")),
                "statements": self.statements(consequence, _named(consequence)) if consequence is not None else None,
                "subsequent": self.convert(node.child_by_field_name("alternative")),
            },
        )

    def convert_if(self, node: tree_sitter.Node) -> RawNode:
        return self._conditional(RawKind.IF, node)

    def convert_elsif(self, node: tree_sitter.Node) -> RawNode:
        return self._conditional(RawKind.ELSIF, node)

    def convert_if_modifier(self, node: tree_sitter.Node) -> RawNode:
        body = node.child_by_field_name("body")
        return self.make(
            RawKind.IF,
            node,
            {
                "predicate": self.convert(node.child_by_field_name("condition")),
                "statements": self.statements(body, [body]) if body is not None else None,
                "subsequent": None,
            },
        )

    def convert_else(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.ELSE, node, {"statements": self.statements(node, _named(node))})

    def convert_binary(self, node: tree_sitter.Node) -> RawNode:
        operator = node.child_by_field_name("operator")
        left = self.convert(node.child_by_field_name("left"))
        right = self.convert(node.child_by_field_name("right"))
        operator_text = _text(operator) if operator is not None else ""
        if operator_text in ("and", "&&"):
            return self.make(RawKind.AND, node, {"left": left, "right": right})
        if operator_text in ("or", "||"):
            return self.make(RawKind.OR, node, {"left": left, "right": right})
        children = tuple(n for n in (left, right) if n is not None)
        return self.make(RawKind.OPAQUE, node, {"children": children}, value=node.type)

    def convert_lambda(self, node: tree_sitter.Node) -> RawNode:
        block = node.child_by_field_name("body")
        return self.make(RawKind.LAMBDA, node, {"body": self.body_of(block) if block is not None else None})

    def convert_block(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.BLOCK, node, {"body": self.body_of(node, "parameters")})

    convert_do_block = convert_block

    def convert_call(self, node: tree_sitter.Node) -> RawNode:
        method = node.child_by_field_name("method")
        receiver = node.child_by_field_name("receiver")
        arguments = node.child_by_field_name("arguments")
        return self.make(
            RawKind.CALL,
            node,
            {
                # A bare identifier receiver is most often a helper method
                "receiver": self.convert_statement(receiver) if receiver is not None else None,
                "arguments": self.convert_argument_list(arguments) if arguments is not None else None,
                "block": self.convert(node.child_by_field_name("block")),
            },
            value=_text(method) if method is not None else "call",
        )

    def convert_argument_list(self, node: tree_sitter.Node) -> RawNode:
        """Keyword arguments (`key: value` pairs after the positional arguments) are grouped into one KEYWORD_HASH"""
        arguments: List[RawNode] = []
        keyword_nodes: List[tree_sitter.Node] = []
        keyword_position: Optional[int] = None
        for child in _named(node):
            if child.type in ("pair", "hash_splat_argument"):
                if keyword_position is None:
                    keyword_position = len(arguments)
                keyword_nodes.append(child)
            else:
                converted = self.convert(child)
                if converted is not None:
                    arguments.append(converted)

        if keyword_position is not None:
            first, last = keyword_nodes[0], keyword_nodes[-1]
            keyword_hash = RawNode(
                RawKind.KEYWORD_HASH,
                Location(first.start_point[0] + 1, first.start_point[1], last.end_point[0] + 1, last.end_point[1]),
                {"elements": self.convert_all(keyword_nodes)},
            )
            arguments.insert(keyword_position, keyword_hash)

        return self.make(RawKind.ARGUMENTS, node, {"arguments": tuple(arguments)})

    def convert_pair(self, node: tree_sitter.Node) -> RawNode:
        key = node.child_by_field_name("key")
        value = node.child_by_field_name("value")
        separators = [c for c in node.children if not c.is_named]
        if key is not None and key.type == "string" and separators and _text(separators[0]) == ":":
            # {"key": value} uses a symbol key
            converted_key = self.convert(key)
            if converted_key is not None and converted_key.kind == RawKind.STRING:
                converted_key = self.make(RawKind.SYMBOL, key, value=converted_key.value)
        else:
            converted_key = self.convert(key)
        return self.make(RawKind.ASSOC, node, {"key": converted_key, "value": self.convert(value)})

    def convert_simple_symbol(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.SYMBOL, node, value=_text(node)[1:])

    def convert_hash_key_symbol(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.SYMBOL, node, value=_text(node))

    convert_bare_symbol = convert_hash_key_symbol

    def convert_delimited_symbol(self, node: tree_sitter.Node) -> RawNode:
        string = self.convert_string(node)
        if string.kind == RawKind.STRING:
            return self.make(RawKind.SYMBOL, node, value=string.value)
        return string

    def convert_string(self, node: tree_sitter.Node) -> RawNode:
        pieces = _named(node)
        if any(p.type == "interpolation" for p in pieces):
            return self.make(RawKind.INTERPOLATED_STRING, node, {"parts": self.convert_all(pieces)})
        return self.make(RawKind.STRING, node, value="".join(self._string_piece(p) for p in pieces))

    convert_bare_string = convert_string

    @staticmethod
    def _string_piece(node: tree_sitter.Node) -> str:
        text = _text(node)
        if node.type == "escape_sequence":
            return _unescape(text)
        return text

    def convert_string_content(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.STRING, node, value=self._string_piece(node))

    convert_escape_sequence = convert_string_content

    def convert_interpolation(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.EMBEDDED_STATEMENTS, node, {"statements": self.statements(node, _named(node))})

    def convert_integer(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.INTEGER, node, value=_ruby_int(_text(node)))

    def convert_float(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.DECIMAL, node, value=float(_text(node).replace("_", "")))

    def convert_constant(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.CONSTANT_READ, node, value=_text(node))

    def convert_array(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.ARRAY, node, {"elements": self.convert_all(_named(node))})

    # %w[] and %i[]
    convert_string_array = convert_array
    convert_symbol_array = convert_array

    def convert_hash(self, node: tree_sitter.Node) -> RawNode:
        return self.make(RawKind.HASH, node, {"elements": self.convert_all(_named(node))})

    def convert_assignment(self, node: tree_sitter.Node) -> RawNode:
        left = node.child_by_field_name("left")
        right = self.convert(node.child_by_field_name("right"))
        if left is not None and left.type == "identifier":
            return self.make(RawKind.LOCAL_VARIABLE_WRITE, node, {"value": right}, value=_text(left))
        if left is not None and left.type == "instance_variable":
            return self.make(RawKind.INSTANCE_VARIABLE_WRITE, node, {"value": right}, value=_text(left))
        if left is not None and left.type == "left_assignment_list":
            return self.make(
                RawKind.MULTI_WRITE,
                node,
                {"lefts": tuple(self._target(t) for t in _named(left)), "value": right},
            )
        children = tuple(n for n in (self.convert(left), right) if n is not None)
        return self.make(RawKind.OPAQUE, node, {"children": children}, value=node.type)

    def _target(self, node: tree_sitter.Node) -> RawNode:
        if node.type == "identifier":
            return self.make(RawKind.LOCAL_VARIABLE_TARGET, node, value=_text(node))
        return self.convert_opaque(node)

    def convert_opaque(self, node: tree_sitter.Node) -> RawNode:
        if node.type in self.STATEMENT_CONTAINERS:
            children = tuple(n for n in (self.convert_statement(c) for c in _named(node)) if n is not None)
        else:
            children = self.convert_all(_named(node))
        return self.make(RawKind.OPAQUE, node, {"children": children}, value=node.type)
