"""
In this module, a raw tree is normalized into the tree described in `i18n_call_tree.nodes`. Only the parts of the
source that matter for auditing translation keys survive:

    * the structure around calls (modules, classes, method definitions, blocks and lambdas)
    * whether a method definition comes after a `private` toggle
    * translation calls, with their key, receiver and options
    * translation calls documented in magic comments, attached to the call on the following line

Everything else is reduced to the calls found below it.
"""
from typing import Callable
from typing import ClassVar
from typing import FrozenSet
from typing import Iterable
from typing import List
from typing import Optional
from typing import Sequence
from typing import Type

from i18n_call_tree.errors import UnsupportedNodeKind
from i18n_call_tree.errors import UnsupportedOptionsEntry
from i18n_call_tree.nodes import BlockNode
from i18n_call_tree.nodes import CallNode
from i18n_call_tree.nodes import ClassNode
from i18n_call_tree.nodes import DefNode
from i18n_call_tree.nodes import InterpolatedString
from i18n_call_tree.nodes import LambdaNode
from i18n_call_tree.nodes import ModuleNode
from i18n_call_tree.nodes import NodeList
from i18n_call_tree.nodes import Primitive
from i18n_call_tree.nodes import Result
from i18n_call_tree.nodes import TranslationCall
from i18n_call_tree.normalize.arguments import classify_arguments
from i18n_call_tree.normalize.magic_comments import CommentTranslationIndex
from i18n_call_tree.normalize.magic_comments import MagicComment
from i18n_call_tree.normalize.magic_comments import SnippetParser
from i18n_call_tree.raw import ruby
from i18n_call_tree.raw.raw_nodes import RawComment
from i18n_call_tree.raw.raw_nodes import RawKind
from i18n_call_tree.raw.raw_nodes import RawNode
from i18n_call_tree.util import as_node_list
from i18n_call_tree.util import flatten
from i18n_call_tree.util import partition_by

__all__ = ["Normalizer"]


def _statements(node: Optional[RawNode]) -> Sequence[RawNode]:
    """The statements held by a STATEMENTS node (which may be absent)"""
    if node is None:
        return ()
    return node.children("body")


class Normalizer:
    """
    A normalizer visits one raw tree. There is a `visit_<kind>` method for every `RawKind`; this is checked when the
    class (or any subclass) is defined.

    Use one instance per file: the instance remembers whether a `private` toggle has been seen, and holds the
    translations found in that file's magic comments.

    Subclasses can recognize more call shapes by extending the class level name sets, or by overriding
    `visit_other_call()`.
    """

    TRANSLATION_CALL_NAMES: ClassVar[FrozenSet[str]] = frozenset({"t", "t!", "translate", "translate!"})
    VISIBILITY_TOGGLE_NAMES: ClassVar[FrozenSet[str]] = frozenset({"private"})
    magic_comment_class: ClassVar[Type[MagicComment]] = MagicComment

    private_methods: bool
    """Set once a visibility toggle has been seen. Every method defined afterwards is private"""

    comment_translations_by_line: CommentTranslationIndex

    def __init__(
        self,
        comments: Optional[Iterable[RawComment]] = None,
        parser: SnippetParser = ruby.parse,
    ) -> None:
        self.private_methods = False
        # Magic comment snippets each get a fresh normalizer of this same class
        self.comment_translations_by_line = CommentTranslationIndex.build(
            comments, type(self), parser, magic_comment_class=self.magic_comment_class
        )

    def __init_subclass__(cls) -> None:
        super().__init_subclass__()
        cls.check_dispatch_table()

    @classmethod
    def check_dispatch_table(cls) -> None:
        missing = [kind.value for kind in RawKind if not callable(getattr(cls, f"visit_{kind.value}", None))]
        if missing:
            raise TypeError(f"Class '{cls.__name__}' has no visitor method for raw kinds: {', '.join(missing)}")

    def normalize(self, node: RawNode) -> Result:
        """Normalize a raw tree (usually a whole file's PROGRAM node)"""
        return self.visit(node)

    def visit(self, node: Optional[RawNode]) -> Result:
        if node is None:
            return None
        if not isinstance(node.kind, RawKind):
            raise UnsupportedNodeKind(node.kind, node.line)
        visitor: Callable[[RawNode], Result] = getattr(self, f"visit_{node.kind.value}")
        return visitor(node)

    def visit_all(self, nodes: Iterable[RawNode]) -> List[Result]:
        return [self.visit(n) for n in nodes]

    def visit_flattened(self, nodes: Iterable[RawNode]) -> NodeList:
        return as_node_list(flatten(self.visit_all(nodes)))

    def visit_program(self, node: RawNode) -> Result:
        return self.visit_flattened(node.child_nodes())

    visit_embedded_statements = visit_program

    def visit_statements(self, node: RawNode) -> Result:
        return self.visit_flattened(_statements(node))

    def visit_module(self, node: RawNode) -> Result:
        children = [r for r in self.visit_all(_statements(node.child("body"))) if r is not None]
        return ModuleNode(node, children)

    def visit_class(self, node: RawNode) -> Result:
        class_node = ClassNode(node)
        for statement in _statements(node.child("body")):
            child = self.visit(statement)
            if child is not None:
                class_node.add_child_node(child)

        return class_node

    def visit_local_variable_write(self, node: RawNode) -> Result:
        # Assignments only matter for the calls below them
        return self.visit_flattened(node.child_nodes())

    visit_instance_variable_write = visit_local_variable_write
    visit_local_variable_target = visit_local_variable_write
    visit_multi_write = visit_local_variable_write

    def visit_def(self, node: RawNode) -> Result:
        calls = flatten([self.visit(node.child("body"))], levels=None)
        return DefNode(node, calls, private=self.private_methods)

    def visit_if(self, node: RawNode) -> Result:
        return as_node_list(r for r in self.visit_all(node.child_nodes()) if r is not None)

    visit_elsif = visit_if

    def visit_else(self, node: RawNode) -> Result:
        return self.visit(node.child("statements")) or NodeList()

    def visit_and(self, node: RawNode) -> Result:
        return NodeList((self.visit(node.child("left")), self.visit(node.child("right"))))

    visit_or = visit_and

    def visit_lambda(self, node: RawNode) -> Result:
        calls = [r for r in self.visit_all(_statements(node.child("body"))) if r is not None]
        return LambdaNode(node, calls)

    def visit_block(self, node: RawNode) -> Result:
        return BlockNode(node, flatten(self.visit_all(_statements(node.child("body")))))

    def visit_call(self, node: RawNode) -> Result:
        # TODO: attach comments to a single call when several calls share the line after the comment
        found = self.comment_translations_by_line.get(node.line - 1)
        comment_translations = list(found) if found is not None else None

        if self.is_visibility_toggle(node):
            self.private_methods = True
            return None
        if node.value in self.TRANSLATION_CALL_NAMES:
            return self.handle_translation_call(node, comment_translations)
        return self.visit_other_call(node, comment_translations)

    def is_visibility_toggle(self, node: RawNode) -> bool:
        """`private` on its own line: no receiver and no arguments"""
        if node.value not in self.VISIBILITY_TOGGLE_NAMES or node.child("receiver") is not None:
            return False
        arguments = node.child("arguments")
        return arguments is None or not arguments.children("arguments")

    def visit_other_call(self, node: RawNode, comment_translations: Optional[List[TranslationCall]]) -> Result:
        """Calls which are not translations. Override to recognize other call shapes"""
        return CallNode(node, comment_translations)

    def handle_translation_call(
        self, node: RawNode, comment_translations: Optional[List[TranslationCall]]
    ) -> Result:
        positional, options = classify_arguments(self, node)
        key = positional[0] if positional else None

        # A key with interpolated parts can't be resolved statically
        if isinstance(key, InterpolatedString):
            return CallNode(node, comment_translations)

        return TranslationCall(
            node,
            key=key,
            receiver=self.visit(node.child("receiver")),
            options=options,
            comment_translations=comment_translations,
        )

    def visit_assoc(self, node: RawNode) -> Result:
        return NodeList((self.visit(node.child("key")), self.visit(node.child("value"))))

    def visit_symbol(self, node: RawNode) -> Result:
        return Primitive.symbol(node.value)

    def visit_string(self, node: RawNode) -> Result:
        return Primitive.string(node.value)

    def visit_interpolated_string(self, node: RawNode) -> Result:
        return InterpolatedString(node, flatten(self.visit_all(node.children("parts"))))

    def visit_integer(self, node: RawNode) -> Result:
        return Primitive.integer(node.value)

    def visit_decimal(self, node: RawNode) -> Result:
        return Primitive.decimal(node.value)

    def visit_constant_read(self, node: RawNode) -> Result:
        return Primitive.symbol(node.value)

    def visit_arguments(self, node: RawNode) -> Result:
        """Positional values first, then exactly one options mapping (empty if there are no keyword arguments)"""
        keywords, others = partition_by(node.children("arguments"), lambda n: n.kind is RawKind.KEYWORD_HASH)
        values = flatten(self.visit_all(others))
        options = self.visit(keywords[0]) if keywords else Primitive.mapping({})
        return NodeList((*values, options))

    def visit_array(self, node: RawNode) -> Result:
        return Primitive.sequence(flatten(self.visit_all(node.children("elements"))))

    def visit_keyword_hash(self, node: RawNode) -> Result:
        mapping = {}
        for child in node.children("elements"):
            if child.kind is not RawKind.ASSOC:
                entry_kind = child.value if child.kind is RawKind.OPAQUE else child.kind.value
                raise UnsupportedOptionsEntry(entry_kind, child.line)
            mapping[self.visit(child.child("key"))] = self.visit(child.child("value"))

        return Primitive.mapping(mapping)

    def visit_hash(self, node: RawNode) -> Result:
        # Unlike keyword arguments, a hash literal may hold splats. They are skipped
        mapping = {}
        for child in node.children("elements"):
            if child.kind is RawKind.ASSOC:
                mapping[self.visit(child.child("key"))] = self.visit(child.child("value"))

        return Primitive.mapping(mapping)

    def visit_opaque(self, node: RawNode) -> Result:
        return self.visit_flattened(node.children("children"))


Normalizer.check_dispatch_table()
