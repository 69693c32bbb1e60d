from typing import Any
from typing import Callable
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Optional
from typing import Tuple
from typing import Type
from typing import TypeVar

import more_itertools

from i18n_call_tree.nodes import NodeList
from i18n_call_tree.nodes import Result

__all__ = ["as_node_list", "flatten", "iter_of_type", "partition_by"]

_T = TypeVar("_T")


def iter_of_type(it: Iterable[Any], t: Type[_T]) -> Iterator[_T]:
    """Yield only the items that are instances of the given type"""
    for i in it:
        if isinstance(i, t):
            yield i


def flatten(results: Iterable[Result], levels: Optional[int] = 1) -> List[Result]:
    """
    Splice the items of any NodeList into the surrounding list (one level deep by default, fully when levels is
    None). Empty results (None) are dropped
    """
    collapsed = more_itertools.collapse(results, base_type=(str, bytes), levels=levels)
    return [r for r in collapsed if r is not None]


def partition_by(items: Iterable[_T], pred: Callable[[_T], bool]) -> Tuple[List[_T], List[_T]]:
    """Split items into (matching, not matching), keeping the original order in both"""
    not_matching, matching = more_itertools.partition(pred, items)
    return list(matching), list(not_matching)


def as_node_list(results: Iterable[Result]) -> NodeList:
    return NodeList(tuple(results))
