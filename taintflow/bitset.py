"""
taintflow.bitset
================

The abstract domain: a fixed-size set of local indices, stored as the bits
of a Python ``int``.  Membership means "may be tainted"; the empty set is
bottom ("definitely untainted").

The lattice is ``(2^Locals, ⊆, ∅, Locals, ∪)``.  Join is union, the only
combine operator a may-analysis needs.  Every operation stays inside
``[0, domain_size)``; the size never changes after construction.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, Iterator, List

from .errors import DomainMismatchError, LocalIndexError


class LocalBitSet:
    """Mutable bit-vector over ``domain_size`` locals."""

    __slots__ = ("_size", "_bits")

    def __init__(self, domain_size: int, bits: int = 0) -> None:
        if domain_size < 0:
            raise ValueError(f"domain size must be non-negative, got {domain_size}")
        if bits < 0 or bits >> domain_size:
            raise ValueError(
                f"bit pattern {bits:#x} does not fit a domain of {domain_size} locals"
            )
        self._size = domain_size
        self._bits = bits

    # ----- construction -----------------------------------------------------

    @classmethod
    def bottom(cls, domain_size: int) -> "LocalBitSet":
        """The empty set over ``domain_size`` locals."""
        return cls(domain_size)

    @classmethod
    def from_locals(cls, domain_size: int, locals_: Iterable[int]) -> "LocalBitSet":
        result = cls(domain_size)
        for local in locals_:
            result.insert(local)
        return result

    def copy(self) -> "LocalBitSet":
        return LocalBitSet(self._size, self._bits)

    # ----- queries ----------------------------------------------------------

    @property
    def domain_size(self) -> int:
        return self._size

    def _check(self, local: int) -> int:
        if not isinstance(local, int) or isinstance(local, bool):
            raise TypeError(f"local index must be an int, got {local!r}")
        if not 0 <= local < self._size:
            raise LocalIndexError(local, self._size)
        return local

    def _check_domain(self, other: "LocalBitSet") -> None:
        if other._size != self._size:
            raise DomainMismatchError(self._size, other._size)

    def contains(self, local: int) -> bool:
        return bool(self._bits >> self._check(local) & 1)

    def is_empty(self) -> bool:
        return self._bits == 0

    def is_subset(self, other: "LocalBitSet") -> bool:
        """``self ⊑ other``."""
        self._check_domain(other)
        return self._bits & ~other._bits == 0

    def __contains__(self, local: object) -> bool:
        if not isinstance(local, int) or isinstance(local, bool):
            return False
        return 0 <= local < self._size and bool(self._bits >> local & 1)

    def __iter__(self) -> Iterator[int]:
        bits = self._bits
        local = 0
        while bits:
            if bits & 1:
                yield local
            bits >>= 1
            local += 1

    def __len__(self) -> int:
        return bin(self._bits).count("1")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocalBitSet):
            return NotImplemented
        return self._size == other._size and self._bits == other._bits

    __hash__ = None  # type: ignore[assignment]

    def as_frozenset(self) -> FrozenSet[int]:
        return frozenset(self)

    def to_list(self) -> List[int]:
        return list(self)

    # ----- mutation ---------------------------------------------------------

    def insert(self, local: int) -> bool:
        """Set the bit for ``local``; return whether it was newly set."""
        mask = 1 << self._check(local)
        changed = not self._bits & mask
        self._bits |= mask
        return changed

    def remove(self, local: int) -> bool:
        """Clear the bit for ``local``; return whether it was set before."""
        mask = 1 << self._check(local)
        changed = bool(self._bits & mask)
        self._bits &= ~mask
        return changed

    def clear(self) -> None:
        self._bits = 0

    def overwrite(self, other: "LocalBitSet") -> None:
        """Replace this set's contents with ``other``'s."""
        self._check_domain(other)
        self._bits = other._bits

    def union_with(self, other: "LocalBitSet") -> bool:
        """In-place join; return whether any bit was added."""
        self._check_domain(other)
        merged = self._bits | other._bits
        changed = merged != self._bits
        self._bits = merged
        return changed

    # ----- lattice operations (non-mutating) --------------------------------

    def join(self, other: "LocalBitSet") -> "LocalBitSet":
        self._check_domain(other)
        return LocalBitSet(self._size, self._bits | other._bits)

    def difference(self, other: "LocalBitSet") -> "LocalBitSet":
        self._check_domain(other)
        return LocalBitSet(self._size, self._bits & ~other._bits)

    __or__ = join
    __sub__ = difference
    __le__ = is_subset

    def __repr__(self) -> str:
        return "{" + ", ".join(f"_{local}" for local in self) + "}"


def bottom(domain_size: int) -> LocalBitSet:
    return LocalBitSet.bottom(domain_size)


def join(a: LocalBitSet, b: LocalBitSet) -> LocalBitSet:
    return a.join(b)


def contains(state: LocalBitSet, local: int) -> bool:
    return state.contains(local)
