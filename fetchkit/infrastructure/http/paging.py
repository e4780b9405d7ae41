"""Paginated-shape discovery.

Backends wrap list results in envelopes of varying shape ({"items": [...]},
{"data": {"results": [...], "meta": {"total": n}}}, a bare array, ...). These
pure functions find the item array and the total count in a parsed JSON tree
without knowing the envelope in advance.

Array choice: greatest length, then shallowest depth, then first in a
pre-order walk. Total: the smallest integer >= the item count found first in
the array's nearest enclosing object and then in the whole tree (the item
array's own subtree is never searched); the item count if none qualifies.
"""

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple, Union

PathElement = Union[str, int]


@dataclass(frozen=True)
class ArrayCandidate:
    """An array found in the tree, with the metadata used to rank it."""
    array: List[Any]
    depth: int
    path: Tuple[PathElement, ...]
    parent: Optional[dict]  # nearest enclosing object, None for a root array

    @property
    def length(self) -> int:
        return len(self.array)


def iter_arrays(root: Any) -> Iterator[ArrayCandidate]:
    """Yields every array in the tree in pre-order, key order."""
    if isinstance(root, list):
        yield ArrayCandidate(array=root, depth=0, path=(), parent=None)
    yield from _walk(root, 0, (), None)


def _walk(
    node: Any, depth: int, path: Tuple[PathElement, ...], nearest_object: Optional[dict]
) -> Iterator[ArrayCandidate]:
    if isinstance(node, dict):
        children = node.items()
        owner: Optional[dict] = node
    elif isinstance(node, list):
        children = enumerate(node)
        owner = nearest_object
    else:
        return

    for key, value in children:
        child_path = path + (key,)
        if isinstance(value, list):
            yield ArrayCandidate(array=value, depth=depth + 1, path=child_path, parent=owner)
        if isinstance(value, (dict, list)):
            yield from _walk(value, depth + 1, child_path, owner)


def select_best_array(root: Any) -> Optional[ArrayCandidate]:
    """Returns the highest-ranked array in the tree, or None if there is none."""
    best: Optional[ArrayCandidate] = None
    for candidate in iter_arrays(root):
        if best is None:
            best = candidate
        elif candidate.length > best.length:
            best = candidate
        elif candidate.length == best.length and candidate.depth < best.depth:
            best = candidate
    return best


def as_count(value: Any) -> Optional[int]:
    """Interprets a JSON scalar as a count, or None if it is not integral."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def iter_counts(node: Any, exclude: Any = None) -> Iterator[int]:
    """Yields every integral number in the tree, skipping the exclude subtree."""
    if exclude is not None and node is exclude:
        return
    if isinstance(node, dict):
        for value in node.values():
            yield from iter_counts(value, exclude)
    elif isinstance(node, list):
        for value in node:
            yield from iter_counts(value, exclude)
    else:
        count = as_count(node)
        if count is not None:
            yield count


def find_total(candidate: ArrayCandidate, root: Any) -> int:
    """Picks the total count for the chosen array (see module docstring)."""
    item_count = candidate.length
    for scope in (candidate.parent, root):
        if scope is None:
            continue
        qualifying = [n for n in iter_counts(scope, exclude=candidate.array) if n >= item_count]
        if qualifying:
            return min(qualifying)
    return item_count


def discover_page(root: Any) -> Optional[Tuple[List[Any], int]]:
    """Finds (items, total) in a parsed JSON tree.

    Returns:
        The raw item list and its total, or None when the tree has no array.
    """
    if isinstance(root, list):
        return root, len(root)

    candidate = select_best_array(root)
    if candidate is None:
        return None
    return candidate.array, find_total(candidate, root)
