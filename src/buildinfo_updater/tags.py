"""Tag vocabulary and the immutable tag set attached to manifest entries."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

LATEST = "latest"
STABLE = "stable"
STABLE_PREFIX = "stable-"


def stable_lineage(version: str) -> str:
    """Return the ``stable-<version>`` lineage tag."""
    return f"{STABLE_PREFIX}{version}"


class TagSet:
    """An immutable set of tags.

    Tags are deduplicated on exact string equality. Every operation
    returns a new ``TagSet``; iteration is always in sorted order so
    serialisation is deterministic.
    """

    __slots__ = ("_tags",)

    def __init__(self, tags: Iterable[str] = ()) -> None:
        self._tags = frozenset(tags)

    def add(self, *tags: str) -> TagSet:
        return TagSet(self._tags.union(tags))

    def remove(self, *tags: str) -> TagSet:
        """Return a copy without *tags*; absent tags are ignored."""
        return TagSet(self._tags.difference(tags))

    def union(self, other: Iterable[str]) -> TagSet:
        return TagSet(self._tags.union(other))

    def replace(self, old: str, new: str) -> TagSet:
        """Swap *old* for *new*. *new* is added even if *old* is absent."""
        return TagSet(self._tags.difference((old,)).union((new,)))

    def sorted(self) -> list[str]:
        return sorted(self._tags)

    def __contains__(self, tag: object) -> bool:
        return tag in self._tags

    def __iter__(self) -> Iterator[str]:
        return iter(self.sorted())

    def __len__(self) -> int:
        return len(self._tags)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TagSet):
            return self._tags == other._tags
        if isinstance(other, (set, frozenset)):
            return self._tags == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._tags)

    def __repr__(self) -> str:
        return f"TagSet({self.sorted()!r})"
