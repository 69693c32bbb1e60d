from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from typing import TYPE_CHECKING

from i18n_call_tree.nodes import Primitive
from i18n_call_tree.nodes import Result
from i18n_call_tree.raw.raw_nodes import RawNode
from i18n_call_tree.util import partition_by

if TYPE_CHECKING:
    from i18n_call_tree.normalize.normalizer import Normalizer

__all__ = ["classify_arguments"]

ClassifiedArguments = Tuple[List[Result], Dict[Result, Result]]


def _is_mapping(value: Result) -> bool:
    return isinstance(value, Primitive) and value.is_mapping


def classify_arguments(normalizer: "Normalizer", call: Optional[RawNode]) -> ClassifiedArguments:
    """
    Split the arguments of a call into (positional values, options mapping).

    Positional values keep their source order, with empty results dropped. The options are the first mapping among the
    normalized arguments. Normalizing an argument list always appends a (possibly empty) options mapping after the
    positional values, so an explicit hash literal passed positionally wins over keyword arguments.
    """
    if call is None or "arguments" not in call.fields:
        return [], {}

    arguments = call.child("arguments")
    if arguments is None or not arguments.children("arguments"):
        return [], {}

    normalized = normalizer.visit(arguments)
    mappings, others = partition_by(normalized, _is_mapping)

    positional = [value for value in others if value is not None]
    options: Dict[Result, Result] = dict(mappings[0].value) if mappings else {}
    return positional, options
