"""
This subpackage holds the normalization engine: the `Normalizer` itself, the classification of call arguments into
positional values and options, and the index of translations documented in magic comments.

The final output is a tree of `i18n_call_tree.nodes` results, ready to be walked by a key auditing tool.
"""
from .arguments import classify_arguments  # noreorder
from .magic_comments import CommentTranslationIndex, MagicComment, translations_in_snippet
from .normalizer import Normalizer

__all__ = ["classify_arguments", "CommentTranslationIndex", "MagicComment", "Normalizer", "translations_in_snippet"]
