"""Nodes of the subsplit DAG."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .bitset import Bitset


@dataclass(frozen=True)
class DAGNode:
    """One subsplit in the DAG.

    Neighbors are stored as node ids into the owning DAG's node list. The
    rootward tuples mirror the leafward tuples of the parents.
    """

    id: int
    subsplit: Bitset
    leafward_sorted: Tuple[int, ...] = ()
    leafward_rotated: Tuple[int, ...] = ()
    rootward_sorted: Tuple[int, ...] = ()
    rootward_rotated: Tuple[int, ...] = ()

    def get_subsplit(self, rotated: bool = False) -> Bitset:
        return self.subsplit.rotate_subsplit() if rotated else self.subsplit

    def leafward(self, rotated: bool) -> Tuple[int, ...]:
        return self.leafward_rotated if rotated else self.leafward_sorted

    def rootward(self, rotated: bool) -> Tuple[int, ...]:
        return self.rootward_rotated if rotated else self.rootward_sorted

    def is_leaf(self) -> bool:
        return not self.leafward_sorted and not self.leafward_rotated

    def is_root(self) -> bool:
        return not self.rootward_sorted and not self.rootward_rotated

    def to_string(self) -> str:
        return (
            f"{self.id}: {self.subsplit.subsplit_to_string()}\n"
            f"  rootward sorted: {list(self.rootward_sorted)}\n"
            f"  rootward rotated: {list(self.rootward_rotated)}\n"
            f"  leafward sorted: {list(self.leafward_sorted)}\n"
            f"  leafward rotated: {list(self.leafward_rotated)}"
        )
