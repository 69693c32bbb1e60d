"""
Tests for the normalizer, driven by raw trees built by hand (see raw_builders.py)
"""
import re
from typing import Dict

import pytest
from raw_builders import and_
from raw_builders import array
from raw_builders import assoc
from raw_builders import block
from raw_builders import call
from raw_builders import class_
from raw_builders import comment
from raw_builders import const
from raw_builders import def_
from raw_builders import else_
from raw_builders import elsif
from raw_builders import hash_
from raw_builders import if_
from raw_builders import interpolated
from raw_builders import keyword_hash
from raw_builders import lambda_
from raw_builders import local_write
from raw_builders import module_
from raw_builders import node
from raw_builders import opaque
from raw_builders import or_
from raw_builders import program
from raw_builders import string
from raw_builders import sym

from i18n_call_tree.errors import SourceParseError
from i18n_call_tree.errors import UnsupportedNodeKind
from i18n_call_tree.errors import UnsupportedOptionsEntry
from i18n_call_tree.nodes import BlockNode
from i18n_call_tree.nodes import CallNode
from i18n_call_tree.nodes import ClassNode
from i18n_call_tree.nodes import DefNode
from i18n_call_tree.nodes import dump
from i18n_call_tree.nodes import LambdaNode
from i18n_call_tree.nodes import ModuleNode
from i18n_call_tree.nodes import NodeList
from i18n_call_tree.nodes import Primitive
from i18n_call_tree.nodes import translation_calls
from i18n_call_tree.nodes import TranslationCall
from i18n_call_tree.normalize.normalizer import Normalizer
from i18n_call_tree.raw.raw_nodes import Location
from i18n_call_tree.raw.raw_nodes import ParsedSource
from i18n_call_tree.raw.raw_nodes import RawKind
from i18n_call_tree.raw.raw_nodes import RawNode


def snippet_parser(snippets: Dict[str, RawNode]):
    """A stand-in parser that knows a fixed set of snippets and fails on anything else"""

    def parse(source: str) -> ParsedSource:
        if source not in snippets:
            raise SourceParseError("<snippet>", 1)
        return ParsedSource(snippets[source])

    return parse


def only(result):
    """The single item of a one-element NodeList"""
    assert isinstance(result, NodeList)
    assert len(result) == 1
    return result[0]


class TestTranslationCalls:
    def test_string_key(self) -> None:
        result = only(Normalizer().normalize(program(call("t", "welcome.title"))))
        assert isinstance(result, TranslationCall)
        assert result.key == Primitive.string("welcome.title")
        assert result.key_value == "welcome.title"
        assert result.receiver is None
        assert result.options == {}
        assert result.comment_translations is None

    def test_symbol_key_and_options(self) -> None:
        result = only(Normalizer().normalize(program(call("t", sym("greeting"), scope="home", count=2))))
        assert isinstance(result, TranslationCall)
        assert result.key == Primitive.symbol("greeting")
        assert result.options == {
            Primitive.symbol("scope"): Primitive.string("home"),
            Primitive.symbol("count"): Primitive.integer(2),
        }
        assert result.options_to_python() == {"scope": "home", "count": 2}

    @pytest.mark.parametrize("name", ("t", "t!", "translate", "translate!"))
    def test_every_translation_name(self, name: str) -> None:
        result = only(Normalizer().normalize(program(call(name, "a.b"))))
        assert isinstance(result, TranslationCall)
        assert result.name == name

    @pytest.mark.parametrize("name", ("t", "t!", "translate", "translate!"))
    def test_interpolated_key_gives_up(self, name: str) -> None:
        key = interpolated("users.", call("kind"), ".title")
        result = only(Normalizer().normalize(program(call(name, key))))
        assert isinstance(result, CallNode)
        assert not isinstance(result, TranslationCall)
        assert result.name == name

    def test_receiver(self) -> None:
        result = only(Normalizer().normalize(program(call("t", "k", receiver=const("I18n")))))
        assert result.receiver == Primitive.symbol("I18n")

    def test_no_arguments(self) -> None:
        result = only(Normalizer().normalize(program(call("t"))))
        assert isinstance(result, TranslationCall)
        assert result.key is None
        assert result.key_value is None
        assert result.options == {}

    def test_array_key(self) -> None:
        result = only(Normalizer().normalize(program(call("t", array("a", "b")))))
        assert result.key == Primitive.sequence([Primitive.string("a"), Primitive.string("b")])
        assert result.key.to_python() == ["a", "b"]
        assert result.key_value is None

    def test_positional_hash_wins_over_keywords(self) -> None:
        result = only(Normalizer().normalize(program(call("t", "k", hash_(assoc(sym("a"), 1)), scope="x"))))
        assert result.options_to_python() == {"a": 1}

    def test_decimal_option(self) -> None:
        result = only(Normalizer().normalize(program(call("t", "k", count=1.5))))
        assert result.options_to_python() == {"count": 1.5}

    def test_string_keyed_options(self) -> None:
        options = keyword_hash(assoc("scope", "home"))
        arguments = node(RawKind.ARGUMENTS, arguments=(string("k"), options))
        raw = node(RawKind.CALL, 1, "t", receiver=None, arguments=arguments, block=None)
        result = only(Normalizer().normalize(program(raw)))
        assert result.options == {Primitive.string("scope"): Primitive.string("home")}

    def test_other_call(self) -> None:
        result = only(Normalizer().normalize(program(call("link_to", "Home", "/"))))
        assert isinstance(result, CallNode)
        assert result.name == "link_to"

    def test_other_call_arguments_are_not_visited(self) -> None:
        tree = program(call("each", block=block(call("t", "inside.block"))))
        result = only(Normalizer().normalize(tree))
        assert isinstance(result, CallNode)
        assert list(translation_calls(result)) == []


class TestOptionsErrors:
    def test_splat_in_keyword_arguments(self) -> None:
        options = keyword_hash(assoc(sym("a"), 1), opaque("hash_splat_argument", line=3), line=3)
        arguments = node(RawKind.ARGUMENTS, 3, arguments=(string("k"), options))
        raw = node(RawKind.CALL, 3, "t", receiver=None, arguments=arguments, block=None)

        with pytest.raises(UnsupportedOptionsEntry, match=re.escape("line 3: hash_splat_argument")) as e:
            Normalizer().normalize(program(raw))
        assert e.value.entry_kind == "hash_splat_argument"
        assert e.value.line == 3

    def test_hash_literal_as_key(self) -> None:
        inner = hash_(assoc(sym("a"), 1))
        result = Normalizer().visit(hash_(assoc(inner, "x"), assoc(array(inner), "y")))
        inner_value = Primitive.mapping({Primitive.symbol("a"): Primitive.integer(1)})
        assert result.value == {
            inner_value: Primitive.string("x"),
            Primitive.sequence([inner_value]): Primitive.string("y"),
        }
        assert hash(inner_value) == hash(Primitive.mapping({Primitive.symbol("a"): Primitive.integer(1)}))

    def test_splat_in_hash_literal_is_skipped(self) -> None:
        result = Normalizer().visit(hash_(assoc(sym("a"), 1), opaque("double_splat")))
        assert result.to_python() == {"a": 1}


class TestUnsupportedKinds:
    def test_unknown_kind_is_fatal(self) -> None:
        stray = RawNode("weird", Location.at_line(7))
        with pytest.raises(UnsupportedNodeKind, match="'weird'") as e:
            Normalizer().normalize(program(call("t", "a"), class_("Foo", stray)))
        assert e.value.kind == "weird"
        assert e.value.line == 7

    def test_opaque_nodes_pass_calls_through(self) -> None:
        tree = program(opaque("begin", call("t", "a"), opaque("rescue", call("t", "b"))))
        keys = [c.key_value for c in translation_calls(Normalizer().normalize(tree))]
        assert keys == ["a", "b"]

    def test_incomplete_subclass_is_rejected(self) -> None:
        with pytest.raises(TypeError, match=re.escape("raw kinds: hash")):

            class IncompleteNormalizer(Normalizer):
                visit_hash = None


class TestStructure:
    def test_class_keeps_source_order(self) -> None:
        result = only(Normalizer().normalize(program(class_("Foo", def_("a"), def_("b"), def_("c")))))
        assert isinstance(result, ClassNode)
        assert [d.name for d in result.child_nodes] == ["a", "b", "c"]

    def test_module_drops_empty_children(self) -> None:
        result = only(Normalizer().normalize(program(module_("Admin", class_("Users"), call("private")))))
        assert isinstance(result, ModuleNode)
        assert len(result.child_nodes) == 1
        assert isinstance(result.child_nodes[0], ClassNode)

    def test_def_flattens_its_body(self) -> None:
        tree = def_(
            "show",
            if_(call("cond"), call("t", "a")),
            local_write("x", call("t", "b")),
        )
        result = Normalizer().visit(tree)
        assert isinstance(result, DefNode)
        assert [type(c) for c in result.calls] == [CallNode, TranslationCall, TranslationCall]
        assert [c.key_value for c in result.calls[1:]] == ["a", "b"]

    def test_empty_def(self) -> None:
        result = Normalizer().visit(def_("noop"))
        assert result.calls == []
        assert result.name == "noop"

    def test_if_elsif_else(self) -> None:
        tree = if_(
            call("a?"),
            call("t", "one"),
            subsequent=elsif(call("b?"), call("t", "two"), subsequent=else_(call("t", "three"))),
        )
        result = Normalizer().visit(tree)
        assert isinstance(result, NodeList)
        assert [c.key_value for c in translation_calls(result)] == ["one", "two", "three"]

    def test_empty_else_is_an_empty_list(self) -> None:
        assert Normalizer().visit(else_()) == NodeList()

    @pytest.mark.parametrize("builder", (and_, or_))
    def test_and_or(self, builder) -> None:
        result = Normalizer().visit(builder(call("ready?"), call("t", "k")))
        assert isinstance(result, NodeList)
        assert len(result) == 2
        assert isinstance(result[0], CallNode)
        assert isinstance(result[1], TranslationCall)

    def test_block_flattens(self) -> None:
        result = Normalizer().visit(block(local_write("x", call("t", "a")), call("t", "b")))
        assert isinstance(result, BlockNode)
        assert [c.key_value for c in result.calls] == ["a", "b"]

    def test_lambda(self) -> None:
        result = Normalizer().visit(lambda_(call("t", "a")))
        assert isinstance(result, LambdaNode)
        assert [c.key_value for c in result.calls] == ["a"]

    def test_arguments_end_with_options(self) -> None:
        result = Normalizer().visit(node(RawKind.ARGUMENTS, arguments=(string("a"), sym("b"))))
        assert result == NodeList((Primitive.string("a"), Primitive.symbol("b"), Primitive.mapping({})))

    def test_normalizing_twice_gives_equal_trees(self) -> None:
        def tree():
            return program(
                module_(
                    "Admin",
                    class_(
                        "UsersController",
                        def_("index", call("t", ".title", scope="admin"), call("render", line=5), line=4),
                        call("private", line=7),
                        def_("helper", call("t", sym("helper"), receiver=const("I18n"), line=9), line=8),
                        line=2,
                    ),
                ),
            )

        comments = [comment("# i18n-tasks-use t('admin.docs')", 4)]
        parser = snippet_parser({"t('admin.docs')": program(call("t", "admin.docs"))})

        first = Normalizer(comments, parser).normalize(tree())
        second = Normalizer(comments, parser).normalize(tree())
        assert dump(first) == dump(second)


class TestPrivateToggle:
    def test_defs_after_private(self) -> None:
        result = only(Normalizer().normalize(program(class_("C", def_("pub"), call("private"), def_("priv")))))
        assert [(d.name, d.private) for d in result.child_nodes] == [("pub", False), ("priv", True)]

    def test_private_with_arguments_is_a_call(self) -> None:
        tree = program(class_("C", call("private", sym("helper")), def_("helper")))
        result = only(Normalizer().normalize(tree))
        first, second = result.child_nodes
        assert isinstance(first, CallNode)
        assert second.private is False

    def test_private_with_receiver_is_a_call(self) -> None:
        tree = program(class_("C", call("private", receiver=const("Other")), def_("helper")))
        result = only(Normalizer().normalize(tree))
        assert result.child_nodes[1].private is False

    def test_toggle_carries_over_to_later_classes(self) -> None:
        tree = program(class_("A", call("private")), class_("B", def_("b")))
        first, second = Normalizer().normalize(tree)
        assert first.child_nodes == []
        assert second.child_nodes[0].private is True


class TestMagicComments:
    def test_attached_to_the_next_line(self) -> None:
        comments = [comment("# i18n-tasks-use t('x.y')", 3)]
        parser = snippet_parser({"t('x.y')": program(call("t", "x.y"))})
        normalizer = Normalizer(comments, parser)

        result = normalizer.normalize(program(call("foo", line=4), call("bar", line=5)))
        foo, bar = result
        assert [c.key_value for c in foo.comment_translations] == ["x.y"]
        assert bar.comment_translations is None

    def test_documents_a_dynamic_key(self) -> None:
        comments = [comment("# i18n-tasks-use t('users.admin.title')", 1)]
        parser = snippet_parser({"t('users.admin.title')": program(call("t", "users.admin.title"))})
        tree = program(call("t", interpolated("users.", call("kind"), ".title"), line=2))

        result = Normalizer(comments, parser).normalize(tree)
        assert isinstance(only(result), CallNode)
        assert [c.key_value for c in translation_calls(result)] == ["users.admin.title"]

    def test_attached_to_translation_call(self) -> None:
        comments = [comment("# i18n-tasks-use t('extra')", 1)]
        parser = snippet_parser({"t('extra')": program(call("t", "extra"))})
        result = Normalizer(comments, parser).normalize(program(call("t", "main", line=2)))

        assert [c.key_value for c in only(result).comment_translations] == ["extra"]
        assert [c.key_value for c in translation_calls(result)] == ["main", "extra"]

    def test_not_a_magic_comment(self) -> None:
        comments = [comment("# t('x.y')", 1)]
        normalizer = Normalizer(comments, snippet_parser({}))
        assert len(normalizer.comment_translations_by_line) == 0

    def test_unparsable_snippet_is_ignored(self) -> None:
        comments = [comment("# i18n-tasks-use t('broken'", 1)]
        result = Normalizer(comments, snippet_parser({})).normalize(program(call("foo", line=2)))
        assert only(result).comment_translations is None


class TestDerivedNormalizers:
    def test_more_translation_names(self) -> None:
        class ViewNormalizer(Normalizer):
            TRANSLATION_CALL_NAMES = Normalizer.TRANSLATION_CALL_NAMES | {"tt"}

        result = only(ViewNormalizer().normalize(program(call("tt", "a.b"))))
        assert isinstance(result, TranslationCall)
        assert result.key_value == "a.b"

    def test_other_call_hook(self) -> None:
        class BlockAwareNormalizer(Normalizer):
            def visit_other_call(self, node, comment_translations):
                return NodeList((CallNode(node, comment_translations), self.visit(node.child("block"))))

        tree = program(call("each", block=block(call("t", "inside.block"))))
        assert [c.key_value for c in translation_calls(BlockAwareNormalizer().normalize(tree))] == ["inside.block"]

    def test_snippets_use_the_derived_class(self) -> None:
        class ViewNormalizer(Normalizer):
            TRANSLATION_CALL_NAMES = Normalizer.TRANSLATION_CALL_NAMES | {"tt"}

        comments = [comment("# i18n-tasks-use tt('a')", 1)]
        parser = snippet_parser({"tt('a')": program(call("tt", "a"))})
        assert 1 in ViewNormalizer(comments, parser).comment_translations_by_line
        assert 1 not in Normalizer(comments, parser).comment_translations_by_line
