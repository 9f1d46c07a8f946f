#!/usr/bin/env python3
"""
Insertion-Ordered Collections

Basket selection must be deterministic: target groups are visited in the order
they are first seen and backups in configured order. Plain dicts cover keyed
maps; this module adds the matching set.
"""

from typing import Dict, Hashable, Iterable, Iterator, List


class OrderedSet:
    """Set that iterates in first-insertion order"""

    def __init__(self, items: Iterable[Hashable] = ()):
        self._items: Dict[Hashable, None] = {}
        for item in items:
            self.add(item)

    def add(self, item: Hashable) -> bool:
        """Add item, returning False if it was already present"""
        if item in self._items:
            return False
        self._items[item] = None
        return True

    def index(self, item: Hashable) -> int:
        for i, existing in enumerate(self._items):
            if existing == item:
                return i
        raise ValueError(f"{item!r} not in set")

    def as_list(self) -> List[Hashable]:
        return list(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"OrderedSet({self.as_list()!r})"
