"""Generalized pruning operation schedules over a subsplit DAG.

Each function returns a fresh list of operations for the numeric engine.
Notation in comments: for a node with subsplit ``s``, ``p_hat(s)`` and
``p_hat(s~)`` are the partial likelihoods below each clade, ``r_hat(s)`` is
the partial likelihood from above, and

    p(s) = p_hat(s) * p_hat(s~)
    r(s) = r_hat(s) * p_hat(s~)
    r(s~) = r_hat(s) * p_hat(s)
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Sequence, Set

from .bitset import Bitset
from .dag import SubsplitDAG
from .dag_node import DAGNode
from .operations import (
    EvolvePLVWeightedBySBNParameter,
    GPOperation,
    IncrementMarginalLikelihood,
    Likelihood,
    Multiply,
    OptimizeBranchLength,
    PLVType,
    SetToStationaryDistribution,
    UpdateSBNProbabilities,
    Zero,
)

logger = logging.getLogger(__name__)


def _down_type(rotated: bool) -> PLVType:
    return PLVType.R_TILDE if rotated else PLVType.R


def _p_hat_type(rotated: bool) -> PLVType:
    return PLVType.P_HAT_TILDE if rotated else PLVType.P_HAT


def marginal_likelihood(dag: SubsplitDAG) -> List[GPOperation]:
    operations: List[GPOperation] = []
    for rootsplit_idx in range(dag.rootsplit_count):
        root_id = dag.root_node_id(rootsplit_idx)
        operations.append(
            IncrementMarginalLikelihood(
                dag.plv_index(PLVType.R_HAT, root_id),
                rootsplit_idx,
                dag.plv_index(PLVType.P, root_id),
            )
        )
    return operations


def compute_likelihoods(dag: SubsplitDAG) -> List[GPOperation]:
    """Per-edge likelihoods for every real node, then the marginal likelihood."""
    operations: List[GPOperation] = []
    for node in dag.iterate_over_real_nodes():
        for rotated in (False, True):
            for child_id in node.leafward(rotated):
                operations.append(
                    Likelihood(
                        dag.gpcsp_index_of_edge(node.id, child_id, rotated),
                        dag.plv_index(_down_type(rotated), node.id),
                        dag.plv_index(PLVType.P, child_id),
                    )
                )
    operations.extend(marginal_likelihood(dag))
    return operations


def _rootward_weighted_sum_accumulate(
    dag: SubsplitDAG, node: DAGNode, rotated: bool, operations: List[GPOperation]
) -> None:
    # p_hat(s) += sum_t q(t|s) P(t|s) p(t) over children t on this side.
    dest = dag.plv_index(_p_hat_type(rotated), node.id)
    for child_id in node.leafward(rotated):
        operations.append(
            EvolvePLVWeightedBySBNParameter(
                dest,
                dag.gpcsp_index_of_edge(node.id, child_id, rotated),
                dag.plv_index(PLVType.P, child_id),
            )
        )


def _update_r_hat(dag: SubsplitDAG, node: DAGNode, rotated: bool, operations: List[GPOperation]) -> None:
    # r_hat(s) += sum_t q(s|t) P(s|t) r(t), with r(t~) for rotated parents.
    dest = dag.plv_index(PLVType.R_HAT, node.id)
    for parent_id in node.rootward(rotated):
        operations.append(
            EvolvePLVWeightedBySBNParameter(
                dest,
                dag.gpcsp_index_of_edge(parent_id, node.id, rotated),
                dag.plv_index(_down_type(rotated), parent_id),
            )
        )


def rootward_pass(dag: SubsplitDAG, visit_order: Sequence[int] | None = None) -> List[GPOperation]:
    """Full rootward pass computing p_hat, p_hat~, and p for every internal node.

    Accumulators are not cleared here; see :func:`set_rootward_zero`.
    """
    if visit_order is None:
        visit_order = dag.rootward_pass_traversal()
    operations: List[GPOperation] = []
    for node_id in visit_order:
        node = dag.get_node(node_id)
        if node.is_leaf():
            continue
        _rootward_weighted_sum_accumulate(dag, node, False, operations)
        _rootward_weighted_sum_accumulate(dag, node, True, operations)
        operations.append(
            Multiply(
                dag.plv_index(PLVType.P, node_id),
                dag.plv_index(PLVType.P_HAT, node_id),
                dag.plv_index(PLVType.P_HAT_TILDE, node_id),
            )
        )
    logger.debug("Rootward pass: %d operations", len(operations))
    return operations


def leafward_pass(dag: SubsplitDAG, visit_order: Sequence[int] | None = None) -> List[GPOperation]:
    """Full leafward pass computing r_hat, r, and r~ for every node.

    Accumulators are not cleared here; see :func:`set_leafward_zero`.
    """
    if visit_order is None:
        visit_order = dag.leafward_pass_traversal()
    operations: List[GPOperation] = []
    for node_id in visit_order:
        node = dag.get_node(node_id)
        _update_r_hat(dag, node, False, operations)
        _update_r_hat(dag, node, True, operations)
        operations.append(
            Multiply(
                dag.plv_index(PLVType.R, node_id),
                dag.plv_index(PLVType.R_HAT, node_id),
                dag.plv_index(PLVType.P_HAT_TILDE, node_id),
            )
        )
        operations.append(
            Multiply(
                dag.plv_index(PLVType.R_TILDE, node_id),
                dag.plv_index(PLVType.R_HAT, node_id),
                dag.plv_index(PLVType.P_HAT, node_id),
            )
        )
    logger.debug("Leafward pass: %d operations", len(operations))
    return operations


def set_rootward_zero(dag: SubsplitDAG) -> List[GPOperation]:
    operations: List[GPOperation] = []
    for node_id in range(dag.taxon_count, dag.node_count):
        operations.append(Zero(dag.plv_index(PLVType.P, node_id)))
        operations.append(Zero(dag.plv_index(PLVType.P_HAT, node_id)))
        operations.append(Zero(dag.plv_index(PLVType.P_HAT_TILDE, node_id)))
    return operations


def set_leafward_zero(dag: SubsplitDAG) -> List[GPOperation]:
    """Clear r-type PLVs, then put the stationary distribution at each root."""
    operations: List[GPOperation] = []
    for node_id in range(dag.node_count):
        operations.append(Zero(dag.plv_index(PLVType.R_HAT, node_id)))
        operations.append(Zero(dag.plv_index(PLVType.R, node_id)))
        operations.append(Zero(dag.plv_index(PLVType.R_TILDE, node_id)))
    for root_id in dag.root_node_ids():
        operations.append(SetToStationaryDistribution(dag.plv_index(PLVType.R_HAT, root_id)))
    return operations


def set_rhat_to_stationary(dag: SubsplitDAG) -> List[GPOperation]:
    operations: List[GPOperation] = []
    for rootsplit_idx in range(dag.rootsplit_count):
        root_id = dag.root_node_id(rootsplit_idx)
        operations.append(SetToStationaryDistribution(dag.plv_index(PLVType.R_HAT, root_id), rootsplit_idx))
    return operations


class _OptimizationStrategy:
    """Per-edge and per-block emission choices for :func:`_schedule_optimization`."""

    def edge_operations(
        self, dag: SubsplitDAG, node_id: int, child_id: int, rotated: bool
    ) -> List[GPOperation]:
        raise NotImplementedError

    def block_operations(self, dag: SubsplitDAG, parent_subsplit: Bitset) -> List[GPOperation]:
        return []


class _BranchLengthStrategy(_OptimizationStrategy):
    def edge_operations(self, dag, node_id, child_id, rotated):
        gpcsp_idx = dag.gpcsp_index_of_edge(node_id, child_id, rotated)
        return [
            OptimizeBranchLength(
                dag.plv_index(PLVType.P, child_id),
                dag.plv_index(_down_type(rotated), node_id),
                gpcsp_idx,
            ),
            EvolvePLVWeightedBySBNParameter(
                dag.plv_index(_p_hat_type(rotated), node_id),
                gpcsp_idx,
                dag.plv_index(PLVType.P, child_id),
            ),
        ]


class _SBNParameterStrategy(_OptimizationStrategy):
    def edge_operations(self, dag, node_id, child_id, rotated):
        gpcsp_idx = dag.gpcsp_index_of_edge(node_id, child_id, rotated)
        return [
            EvolvePLVWeightedBySBNParameter(
                dag.plv_index(_p_hat_type(rotated), node_id),
                gpcsp_idx,
                dag.plv_index(PLVType.P, child_id),
            ),
            Likelihood(
                gpcsp_idx,
                dag.plv_index(_down_type(rotated), node_id),
                dag.plv_index(PLVType.P, child_id),
            ),
        ]

    def block_operations(self, dag, parent_subsplit):
        param_range = dag.subsplit_to_range.get(parent_subsplit)
        if param_range is None or param_range[1] - param_range[0] <= 1:
            return []
        return [UpdateSBNProbabilities(*param_range)]


def _optimization_steps(
    dag: SubsplitDAG,
    node_id: int,
    strategy: _OptimizationStrategy,
    visited: Set[int],
    operations: List[GPOperation],
) -> Iterator[int]:
    """Emit operations for one node, yielding each child that must be resolved first.

    The caller resolves a yielded child completely before resuming this
    generator, so the child's p is current when its edge operations are
    emitted.
    """
    node = dag.get_node(node_id)
    r_hat = dag.plv_index(PLVType.R_HAT, node_id)
    r = dag.plv_index(PLVType.R, node_id)
    r_tilde = dag.plv_index(PLVType.R_TILDE, node_id)
    p_hat = dag.plv_index(PLVType.P_HAT, node_id)
    p_hat_tilde = dag.plv_index(PLVType.P_HAT_TILDE, node_id)

    if not node.is_root():
        # Recompute r_hat(s) from the parents' current r and q values.
        operations.append(Zero(r_hat))
        _update_r_hat(dag, node, False, operations)
        _update_r_hat(dag, node, True, operations)
        operations.append(Multiply(r, r_hat, p_hat_tilde))
        operations.append(Multiply(r_tilde, r_hat, p_hat))

    if node.is_leaf():
        return

    operations.append(Zero(p_hat))
    for child_id in node.leafward_sorted:
        if child_id not in visited:
            yield child_id
        operations.extend(strategy.edge_operations(dag, node_id, child_id, False))
    operations.extend(strategy.block_operations(dag, node.get_subsplit(False)))
    operations.append(Multiply(r_tilde, r_hat, p_hat))

    operations.append(Zero(p_hat_tilde))
    for child_id in node.leafward_rotated:
        if child_id not in visited:
            yield child_id
        operations.extend(strategy.edge_operations(dag, node_id, child_id, True))
    operations.extend(strategy.block_operations(dag, node.get_subsplit(True)))
    operations.append(Multiply(r, r_hat, p_hat_tilde))

    operations.append(Multiply(dag.plv_index(PLVType.P, node_id), p_hat, p_hat_tilde))


def _schedule_optimization(
    dag: SubsplitDAG,
    node_id: int,
    strategy: _OptimizationStrategy,
    visited: Set[int],
    operations: List[GPOperation],
) -> None:
    visited.add(node_id)
    stack = [_optimization_steps(dag, node_id, strategy, visited, operations)]
    while stack:
        child_id = next(stack[-1], None)
        if child_id is None:
            stack.pop()
            continue
        visited.add(child_id)
        stack.append(_optimization_steps(dag, child_id, strategy, visited, operations))


def branch_length_optimization(dag: SubsplitDAG) -> List[GPOperation]:
    """Optimize each branch length once, keeping p and r vectors current as it goes."""
    operations: List[GPOperation] = []
    visited: Set[int] = set()
    strategy = _BranchLengthStrategy()
    for root_id in dag.root_node_ids():
        _schedule_optimization(dag, root_id, strategy, visited, operations)
    logger.debug("Branch length optimization: %d operations", len(operations))
    return operations


def sbn_parameter_optimization(dag: SubsplitDAG) -> List[GPOperation]:
    """Recompute per-edge likelihoods and renormalize SBN parameters in one sweep."""
    operations: List[GPOperation] = []
    visited: Set[int] = set()
    strategy = _SBNParameterStrategy()
    for rootsplit_idx in range(dag.rootsplit_count):
        root_id = dag.root_node_id(rootsplit_idx)
        _schedule_optimization(dag, root_id, strategy, visited, operations)
        operations.append(
            IncrementMarginalLikelihood(
                dag.plv_index(PLVType.R_HAT, root_id),
                rootsplit_idx,
                dag.plv_index(PLVType.P, root_id),
            )
        )
    # p vectors at the roots are current now, so the rootsplit block can be renormalized.
    operations.append(UpdateSBNProbabilities(0, dag.rootsplit_count))
    logger.debug("SBN parameter optimization: %d operations", len(operations))
    return operations
