"""Immutable bit vectors for clades, subsplits, and PCSPs.

Notes:
* Bits are stored in a ``bitarray.frozenbitarray``, so they hash and can be
  used as dict keys.
* Ordering is the standard total order on bitarrays (lexicographic, 0 < 1).
* Addition is concatenation: a subsplit is two clades, a PCSP is a parent
  subsplit followed by a child subsplit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from bitarray import frozenbitarray
from bitarray.util import zeros as _zeros


@dataclass(frozen=True, order=True)
class Bitset:
    """Fixed-length bit vector; position ``i`` corresponds to taxon ``i``."""

    bits: frozenbitarray

    def __post_init__(self) -> None:
        if not isinstance(self.bits, frozenbitarray):
            object.__setattr__(self, "bits", frozenbitarray(self.bits))

    @classmethod
    def zeros(cls, size: int) -> "Bitset":
        if size < 0:
            raise ValueError("size must be >= 0")
        return cls(frozenbitarray(_zeros(size)))

    @classmethod
    def singleton(cls, size: int, which: int) -> "Bitset":
        if not 0 <= which < size:
            raise ValueError(f"bit {which} out of range for size {size}")
        return cls.from_indices(size, [which])

    @classmethod
    def from_indices(cls, size: int, indices: Iterable[int]) -> "Bitset":
        arr = _zeros(size)
        for i in indices:
            i = int(i)
            if i < 0 or i >= size:
                raise ValueError(f"indices must lie in [0, {size})")
            arr[i] = 1
        return cls(frozenbitarray(arr))

    @classmethod
    def from_string(cls, text: str) -> "Bitset":
        text = text.replace("|", "")
        if any(ch not in "01" for ch in text):
            raise ValueError(f"Bitset strings may only contain 0, 1 and |: {text!r}")
        return cls(frozenbitarray(text))

    @staticmethod
    def subsplit_of_pair(clade1: "Bitset", clade2: "Bitset") -> "Bitset":
        """Concatenate two disjoint clades with the lesser one on the left."""
        if len(clade1) != len(clade2):
            raise ValueError("Clades of a subsplit must have equal length")
        if clade1 & clade2:
            raise ValueError("Clades of a subsplit must be disjoint")
        if clade2 < clade1:
            clade1, clade2 = clade2, clade1
        return clade1 + clade2

    def __len__(self) -> int:
        return len(self.bits)

    def __getitem__(self, i: int) -> bool:
        return bool(self.bits[i])

    def __bool__(self) -> bool:
        return self.any()

    def __add__(self, other: "Bitset") -> "Bitset":
        return Bitset(frozenbitarray(self.bits + other.bits))

    def __invert__(self) -> "Bitset":
        return Bitset(frozenbitarray(~self.bits))

    def __or__(self, other: "Bitset") -> "Bitset":
        self._check_same_size(other)
        return Bitset(frozenbitarray(self.bits | other.bits))

    def __and__(self, other: "Bitset") -> "Bitset":
        self._check_same_size(other)
        return Bitset(frozenbitarray(self.bits & other.bits))

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Bitset('{self.to_string()}')"

    def _check_same_size(self, other: "Bitset") -> None:
        if len(self) != len(other):
            raise ValueError(f"Bitset size mismatch: {len(self)} vs {len(other)}")

    def any(self) -> bool:
        return self.bits.any()

    def count(self) -> int:
        return self.bits.count(1)

    def indices(self) -> list[int]:
        return [i for i, b in enumerate(self.bits) if b]

    def is_singleton(self) -> bool:
        return self.count() == 1

    def singleton_option(self) -> int | None:
        """Index of the only set bit, or None if there isn't exactly one."""
        if not self.is_singleton():
            return None
        return self.bits.index(1)

    def _chunk(self, i: int, chunk_count: int) -> "Bitset":
        if len(self) % chunk_count:
            raise ValueError(f"Bitset of length {len(self)} does not split into {chunk_count} chunks")
        n = len(self) // chunk_count
        return Bitset(frozenbitarray(self.bits[i * n : (i + 1) * n]))

    def split_chunk(self, i: int) -> "Bitset":
        """Clade ``i`` (0 or 1) of a subsplit."""
        if i not in (0, 1):
            raise ValueError("subsplit chunk index must be 0 or 1")
        return self._chunk(i, 2)

    def rotate_subsplit(self) -> "Bitset":
        """Swap the two clades of a subsplit."""
        return self.split_chunk(1) + self.split_chunk(0)

    def to_string(self) -> str:
        return self.bits.to01()

    def subsplit_to_string(self) -> str:
        return f"{self.split_chunk(0)}|{self.split_chunk(1)}"

    def pcsp_to_string(self) -> str:
        return "|".join(str(self._chunk(i, 4)) for i in range(4))


def fake_subsplit(taxon_count: int, taxon: int) -> Bitset:
    """Degenerate subsplit standing for a single taxon as a DAG leaf."""
    return Bitset.zeros(taxon_count) + Bitset.singleton(taxon_count, taxon)


def root_subsplit(rootsplit: Bitset) -> Bitset:
    return rootsplit + ~rootsplit
