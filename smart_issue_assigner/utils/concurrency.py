"""Bounded fan-out helpers."""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, TypeVar

T = TypeVar('T')
R = TypeVar('R')


def unique_preserving_order(items: Iterable[str]) -> List[str]:
    """Drop case-insensitive duplicates, keeping the first spelling seen."""
    seen = set()
    result = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


def bounded_map(func: Callable[[T], R], items: List[T], max_workers: int) -> List[R]:
    """Apply ``func`` to every item with at most ``max_workers`` in flight.

    Results come back in input order. Exceptions raised by ``func``
    propagate to the caller.
    """
    if not items:
        return []
    if max_workers <= 1 or len(items) == 1:
        return [func(item) for item in items]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as executor:
        return list(executor.map(func, items))


def bounded_map_unique(func: Callable[[str], R], names: Iterable[str], max_workers: int) -> Dict[str, R]:
    """Run ``func`` once per distinct name and return results keyed by name, in first-seen order."""
    unique = unique_preserving_order(names)
    results = bounded_map(func, unique, max_workers)
    return dict(zip(unique, results))
