"""
Magic comments let a developer document translation keys that the scanner could never find by itself, eg a key built
at runtime:

    # i18n-tasks-use t('activerecord.attributes.user.name')
    t("activerecord.attributes.user.#{field}")

The code following the prefix is parsed and normalized like real source, and the translation calls it contains are
attached to the call on the line right after the comment.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable
from typing import ClassVar
from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Mapping
from typing import Optional
from typing import Pattern
from typing import Sequence
from typing import Tuple
from typing import Type
from typing import TYPE_CHECKING

from typing_extensions import Self

from i18n_call_tree.errors import NormalizationError
from i18n_call_tree.errors import SourceParseError
from i18n_call_tree.nodes import TranslationCall
from i18n_call_tree.raw import ruby
from i18n_call_tree.raw.raw_nodes import ParsedSource
from i18n_call_tree.raw.raw_nodes import RawComment
from i18n_call_tree.util import flatten
from i18n_call_tree.util import iter_of_type

if TYPE_CHECKING:
    from i18n_call_tree.normalize.normalizer import Normalizer

__all__ = ["MagicComment", "CommentTranslationIndex", "SnippetParser", "translations_in_snippet"]

logger = logging.getLogger(__name__)

SnippetParser = Callable[[str], ParsedSource]
"""Anything that turns a snippet of source into a raw tree. Expected to raise SourceParseError on bad input"""


@dataclass(frozen=True)
class MagicComment:
    """A comment which embeds source code to be scanned as if it were real code"""

    PREFIX: ClassVar[Pattern[str]] = re.compile(r"\A.\s*i18n-tasks-use\s+")
    # The first character is the comment marker itself
    SKIP_MARKER: ClassVar[str] = "i18n-tasks-skip-prism"

    line: int
    # Line of the comment itself (1-based)
    snippet: str

    @classmethod
    def as_magic_comment(cls, comment: RawComment) -> Optional[Self]:
        """
        Return a MagicComment if the given comment carries the magic prefix, None otherwise. Every `#` is removed from
        the snippet, so `t("a.#{x}")` documents the key "a.{x}"
        """
        match = cls.PREFIX.match(comment.text)
        if match is None:
            return None
        return cls(comment.line, comment.text[match.end() :].replace("#", "").strip())

    @classmethod
    def find_magic_comments(cls, comments: Iterable[RawComment]) -> List[Self]:
        return [m for m in (cls.as_magic_comment(c) for c in comments) if m is not None]

    @classmethod
    def requests_skip(cls, comments: Iterable[RawComment]) -> bool:
        """True if any comment asks for the whole file to be left out of scanning"""
        return any(cls.SKIP_MARKER in c.text for c in comments)


def translations_in_snippet(
    snippet: str, normalizer_factory: Callable[[], "Normalizer"], parser: SnippetParser = ruby.parse
) -> List[TranslationCall]:
    """
    Parse and normalize a snippet with a brand new normalizer and return the translation calls found at its top
    level. Errors are raised to the caller
    """
    parsed = parser(snippet)
    result = normalizer_factory().normalize(parsed.tree)
    return list(iter_of_type(flatten([result]), TranslationCall))


class CommentTranslationIndex(Mapping[int, Tuple[TranslationCall, ...]]):
    """Translation calls found in magic comments, keyed by the line of the comment. Read only once built"""

    def __init__(self, by_line: Optional[Mapping[int, Sequence[TranslationCall]]] = None) -> None:
        self._by_line: Dict[int, Tuple[TranslationCall, ...]] = {
            line: tuple(calls) for line, calls in (by_line or {}).items()
        }

    def __getitem__(self, line: int) -> Tuple[TranslationCall, ...]:
        return self._by_line[line]

    def __iter__(self) -> Iterator[int]:
        return iter(self._by_line)

    def __len__(self) -> int:
        return len(self._by_line)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._by_line!r})"

    @classmethod
    def build(
        cls,
        comments: Optional[Iterable[RawComment]],
        normalizer_factory: Callable[[], "Normalizer"],
        parser: SnippetParser = ruby.parse,
        magic_comment_class: Type[MagicComment] = MagicComment,
    ) -> Self:
        """
        Scan the comments of one file. Comments without the magic prefix are ignored. A snippet that cannot be parsed
        or normalized, or that holds no translation call, is skipped without raising.

        If two magic comments sit on the same line, the last one wins.
        """
        by_line: Dict[int, List[TranslationCall]] = {}
        if comments is None:
            return cls(by_line)

        for magic_comment in magic_comment_class.find_magic_comments(comments):
            try:
                calls = translations_in_snippet(magic_comment.snippet, normalizer_factory, parser)
            except (SourceParseError, NormalizationError, ValueError, TypeError) as e:
                logger.debug("Ignoring magic comment on line %d: %s", magic_comment.line, e)
                continue

            if not calls:
                continue

            if magic_comment.line in by_line:
                logger.debug("Magic comment on line %d replaces an earlier one on the same line", magic_comment.line)
            by_line[magic_comment.line] = calls

        return cls(by_line)
