"""Helpers for the flat SBN parameter vector laid out by a SubsplitDAG.

The vector holds rootsplit probabilities in ``[0, rootsplit_count)``
followed by one contiguous block of conditional probabilities per parent
subsplit orientation (``SubsplitDAG.subsplit_to_range``).
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
from scipy.special import logsumexp

from .dag import SubsplitDAG


def build_uniform_q(dag: SubsplitDAG) -> np.ndarray:
    """Uniform SBN parameters: each block sums to one."""
    q = np.ones(dag.generalized_pcsp_count, dtype=float)
    if dag.rootsplit_count:
        q[: dag.rootsplit_count] = 1.0 / dag.rootsplit_count
    for start, stop in dag.subsplit_to_range.values():
        q[start:stop] = 1.0 / (stop - start)
    return q


def probability_normalize_range_in_log(vec: np.ndarray, index_range: Tuple[int, int]) -> None:
    """Normalize ``vec[start:stop]`` in place so its exponentials sum to one."""
    start, stop = index_range
    if not 0 <= start <= stop <= len(vec):
        raise ValueError(f"range [{start}, {stop}) out of bounds for length {len(vec)}")
    if stop == start:
        return
    vec[start:stop] -= logsumexp(vec[start:stop])


def probability_normalize_params_in_log(
    vec: np.ndarray,
    rootsplit_count: int,
    parent_ranges: Iterable[Tuple[int, int]],
) -> None:
    """Normalize the rootsplit block and every parent block of ``vec`` in log space."""
    probability_normalize_range_in_log(vec, (0, rootsplit_count))
    for index_range in parent_ranges:
        probability_normalize_range_in_log(vec, index_range)
