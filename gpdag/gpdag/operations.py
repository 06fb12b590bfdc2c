"""Generalized pruning operations and the PLV index layout.

Operations are plain immutable records; executing them against partial
likelihood vectors is up to the numeric engine that consumes the lists
produced by :mod:`gpdag.scheduler`.

PLVs are laid out in six blocks of ``node_count`` vectors each, so the
vector of kind ``t`` for node ``i`` lives at ``t * node_count + i``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from .errors import InvalidPLVTypeError


class PLVType(IntEnum):
    P = 0
    P_HAT = 1
    P_HAT_TILDE = 2
    R_HAT = 3
    R = 4
    R_TILDE = 5


PLV_TYPE_COUNT = len(PLVType)


def plv_index(plv_type: PLVType | int, node_count: int, node_id: int) -> int:
    try:
        kind = PLVType(plv_type)
    except ValueError:
        raise InvalidPLVTypeError(f"Invalid PLV type requested: {plv_type!r}") from None
    return int(kind) * node_count + node_id


@dataclass(frozen=True)
class Zero:
    dest: int

    def __str__(self) -> str:
        return f"Zero({self.dest})"


@dataclass(frozen=True)
class SetToStationaryDistribution:
    dest: int
    rootsplit: int | None = None

    def __str__(self) -> str:
        if self.rootsplit is None:
            return f"SetToStationaryDistribution({self.dest})"
        return f"SetToStationaryDistribution({self.dest}, rootsplit={self.rootsplit})"


@dataclass(frozen=True)
class IncrementMarginalLikelihood:
    stationary_times_prob: int
    rootsplit: int
    p: int

    def __str__(self) -> str:
        return (
            f"IncrementMarginalLikelihood(stationary_times_prob={self.stationary_times_prob}, "
            f"rootsplit={self.rootsplit}, p={self.p})"
        )


@dataclass(frozen=True)
class Multiply:
    """``dest = src1 * src2`` elementwise."""

    dest: int
    src1: int
    src2: int

    def __str__(self) -> str:
        return f"Multiply({self.dest} = {self.src1} * {self.src2})"


@dataclass(frozen=True)
class Likelihood:
    """Per-site likelihood of edge ``dest`` (a gpcsp index) from two PLVs."""

    dest: int
    parent: int
    child: int

    def __str__(self) -> str:
        return f"Likelihood(gpcsp={self.dest}, parent={self.parent}, child={self.child})"


@dataclass(frozen=True)
class EvolvePLVWeightedBySBNParameter:
    """``dest += q[gpcsp] * P(gpcsp) src``."""

    dest: int
    gpcsp: int
    src: int

    def __str__(self) -> str:
        return f"EvolvePLVWeightedBySBNParameter({self.dest} += q[{self.gpcsp}] * {self.src})"


@dataclass(frozen=True)
class OptimizeBranchLength:
    leafward: int
    rootward: int
    gpcsp: int

    def __str__(self) -> str:
        return (
            f"OptimizeBranchLength(leafward={self.leafward}, rootward={self.rootward}, "
            f"gpcsp={self.gpcsp})"
        )


@dataclass(frozen=True)
class UpdateSBNProbabilities:
    """Renormalize SBN parameters in ``[start, stop)``."""

    start: int
    stop: int

    def __str__(self) -> str:
        return f"UpdateSBNProbabilities([{self.start}, {self.stop}))"


GPOperation = Union[
    Zero,
    SetToStationaryDistribution,
    IncrementMarginalLikelihood,
    Multiply,
    Likelihood,
    EvolvePLVWeightedBySBNParameter,
    OptimizeBranchLength,
    UpdateSBNProbabilities,
]
