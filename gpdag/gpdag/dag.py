"""Subsplit DAG construction, parameter indexing, and traversal orders."""

from __future__ import annotations

import logging
from dataclasses import replace
from itertools import chain
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Tuple

import networkx as nx

from .bitset import Bitset, fake_subsplit, root_subsplit
from .dag_node import DAGNode
from .errors import EmptyDAGError, MissingPCSPError, MissingSubsplitError
from .operations import PLV_TYPE_COUNT, PLVType, plv_index
from .traversal import postorder_depth_first
from .tree_sample import RootedTreeSample

logger = logging.getLogger(__name__)

IndexRange = Tuple[int, int]


class SubsplitDAG:
    """DAG of all subsplits in a sample of rooted topologies.

    Node ids ``[0, taxon_count)`` are the fake leaf subsplits; the remaining
    ids are created in depth-first post-order from each rootsplit, so every
    node has a larger id than all of its descendants.

    Two index layouts are maintained. The placeholder layout built from the
    sample (``_parent_to_range`` / ``_index_to_child``) only records which
    child subsplits each parent has. The final layout (``gpcsp_indexer`` /
    ``subsplit_to_range``) is built from the finished DAG and is the one the
    SBN parameter vector uses: rootsplits first, then for each real node in
    id order a block for its sorted children and a block for its rotated
    children.
    """

    def __init__(self, sample: RootedTreeSample):
        self.taxon_count: int = sample.taxon_count
        self._rootsplits: List[Bitset] = []
        self._parent_to_range: Dict[Bitset, IndexRange] = {}
        self._index_to_child: Dict[int, Bitset] = {}
        self._rootsplit_and_pcsp_count = 0
        self._nodes: List[DAGNode] = []
        self._subsplit_to_index: Dict[Bitset, int] = {}
        self._gpcsp_indexer: Dict[Bitset, int] = {}
        self._subsplit_to_range: Dict[Bitset, IndexRange] = {}

        self._process_trees(sample)
        self._build_nodes()
        self._build_edges()
        self._build_pcsp_indexer()
        logger.info(
            "Subsplit DAG built: %d taxa, %d nodes, %d edges, %d rootsplits, %d generalized PCSPs",
            self.taxon_count,
            self.node_count,
            self.edge_count,
            len(self._rootsplits),
            self.generalized_pcsp_count,
        )

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    def _process_trees(self, sample: RootedTreeSample) -> None:
        index = 0
        for rootsplit in sample.rootsplit_counter():
            self._rootsplits.append(rootsplit)
            index += 1
        for parent, child_counter in sample.pcsp_counter().items():
            self._parent_to_range[parent] = (index, index + len(child_counter))
            for child in child_counter:
                self._index_to_child[index] = child
                index += 1
        self._rootsplit_and_pcsp_count = index
        logger.debug(
            "Processed sample: %d rootsplits, %d parent subsplits, %d PCSPs",
            len(self._rootsplits),
            len(self._parent_to_range),
            index - len(self._rootsplits),
        )

    def _children_subsplits(self, subsplit: Bitset, include_fake_subsplits: bool) -> List[Bitset]:
        """Child subsplits of ``subsplit`` in the orientation given.

        A subsplit whose second clade is a single taxon never appears as a
        parent in the sample; with ``include_fake_subsplits`` its child is
        the fake subsplit of that taxon.
        """
        if subsplit in self._parent_to_range:
            start, stop = self._parent_to_range[subsplit]
            return [self._index_to_child[i] for i in range(start, stop)]
        if include_fake_subsplits:
            taxon = subsplit.split_chunk(1).singleton_option()
            if subsplit.split_chunk(0).any() and taxon is not None:
                return [fake_subsplit(self.taxon_count, taxon)]
        return []

    def _create_and_insert_node(self, subsplit: Bitset) -> None:
        node_id = len(self._nodes)
        if subsplit in self._subsplit_to_index:
            raise ValueError(f"Subsplit already in DAG: {subsplit.subsplit_to_string()}")
        self._subsplit_to_index[subsplit] = node_id
        self._nodes.append(DAGNode(node_id, subsplit))

    def _build_nodes(self) -> None:
        for taxon in range(self.taxon_count):
            self._create_and_insert_node(fake_subsplit(self.taxon_count, taxon))

        def children(subsplit: Bitset):
            return chain(
                self._children_subsplits(subsplit, False),
                self._children_subsplits(subsplit.rotate_subsplit(), False),
            )

        # Shared across rootsplits: a subsplit reachable from several roots is
        # created once, and rootsplits take the highest ids of their subtrees.
        visited: set[Bitset] = set()
        for rootsplit in self._rootsplits:
            for subsplit in postorder_depth_first([root_subsplit(rootsplit)], children, visited):
                self._create_and_insert_node(subsplit)

    def _build_edges(self) -> None:
        # adjacency[direction][rotated][node_id] -> neighbor ids
        adjacency = {
            direction: {rotated: [[] for _ in self._nodes] for rotated in (False, True)}
            for direction in ("leafward", "rootward")
        }
        for node in self._nodes[self.taxon_count :]:
            for rotated in (False, True):
                for child_subsplit in self._children_subsplits(node.get_subsplit(rotated), True):
                    child_id = self.node_id_of(child_subsplit)
                    adjacency["leafward"][rotated][node.id].append(child_id)
                    adjacency["rootward"][rotated][child_id].append(node.id)

        self._nodes = [
            replace(
                node,
                leafward_sorted=tuple(adjacency["leafward"][False][node.id]),
                leafward_rotated=tuple(adjacency["leafward"][True][node.id]),
                rootward_sorted=tuple(adjacency["rootward"][False][node.id]),
                rootward_rotated=tuple(adjacency["rootward"][True][node.id]),
            )
            for node in self._nodes
        ]

    def _build_pcsp_indexer(self) -> None:
        idx = 0
        for rootsplit in self._rootsplits:
            self._gpcsp_indexer[root_subsplit(rootsplit)] = idx
            idx += 1
        for node in self.iterate_over_real_nodes():
            for rotated in (False, True):
                child_ids = node.leafward(rotated)
                if not child_ids:
                    continue
                parent = node.get_subsplit(rotated)
                self._subsplit_to_range[parent] = (idx, idx + len(child_ids))
                for child_id in child_ids:
                    self._gpcsp_indexer[parent + self._nodes[child_id].subsplit] = idx
                    idx += 1

    # ------------------------------------------------------------------ #
    # Accessors
    # ------------------------------------------------------------------ #

    @property
    def nodes(self) -> Tuple[DAGNode, ...]:
        return tuple(self._nodes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(n.leafward_sorted) + len(n.leafward_rotated) for n in self._nodes)

    @property
    def rootsplits(self) -> Tuple[Bitset, ...]:
        return tuple(self._rootsplits)

    @property
    def rootsplit_count(self) -> int:
        return len(self._rootsplits)

    @property
    def rootsplit_and_pcsp_count(self) -> int:
        """Rootsplits plus the PCSPs observed in the sample."""
        return self._rootsplit_and_pcsp_count

    @property
    def generalized_pcsp_count(self) -> int:
        """Rootsplits, observed PCSPs, and the PCSPs ending in fake subsplits."""
        fake_subsplit_parameter_count = 0
        for taxon in range(self.taxon_count):
            node = self._nodes[taxon]
            fake_subsplit_parameter_count += len(node.rootward_rotated) + len(node.rootward_sorted)
        return self._rootsplit_and_pcsp_count + fake_subsplit_parameter_count

    @property
    def gpcsp_indexer(self) -> Mapping[Bitset, int]:
        return MappingProxyType(self._gpcsp_indexer)

    @property
    def subsplit_to_range(self) -> Mapping[Bitset, IndexRange]:
        return MappingProxyType(self._subsplit_to_range)

    @property
    def plv_count(self) -> int:
        return PLV_TYPE_COUNT * self.node_count

    def get_node(self, node_id: int) -> DAGNode:
        return self._nodes[node_id]

    def node_id_of(self, subsplit: Bitset) -> int:
        try:
            return self._subsplit_to_index[subsplit]
        except KeyError:
            raise MissingSubsplitError(f"No DAG node for subsplit {subsplit}") from None

    def root_node_id(self, rootsplit_idx: int) -> int:
        return self.node_id_of(root_subsplit(self._rootsplits[rootsplit_idx]))

    def root_node_ids(self) -> List[int]:
        return [self.root_node_id(i) for i in range(len(self._rootsplits))]

    def gpcsp_index(self, pcsp: Bitset) -> int:
        try:
            return self._gpcsp_indexer[pcsp]
        except KeyError:
            raise MissingPCSPError(f"Non-existent PCSP index: {pcsp}") from None

    def gpcsp_index_of_edge(self, parent_id: int, child_id: int, rotated: bool) -> int:
        """Parameter index of the edge from ``parent_id`` (in the given orientation) to ``child_id``."""
        parent = self._nodes[parent_id].get_subsplit(rotated)
        return self.gpcsp_index(parent + self._nodes[child_id].subsplit)

    def plv_index(self, plv_type: PLVType | int, node_id: int) -> int:
        return plv_index(plv_type, self.node_count, node_id)

    def iterate_over_real_nodes(self) -> Iterator[DAGNode]:
        if self.taxon_count >= len(self._nodes):
            raise EmptyDAGError("No real DAG nodes!")
        return iter(self._nodes[self.taxon_count :])

    # ------------------------------------------------------------------ #
    # Traversal orders
    # ------------------------------------------------------------------ #

    def leafward_pass_traversal(self) -> List[int]:
        """Visit order for the leafward pass: every node after all of its parents.

        Walks rootward from every leaf and emits in post-order, so roots come
        first.
        """
        return postorder_depth_first(
            range(self.taxon_count),
            lambda i: chain(self._nodes[i].rootward_sorted, self._nodes[i].rootward_rotated),
        )

    def rootward_pass_traversal(self) -> List[int]:
        """Visit order for the rootward pass: every node after all of its children.

        Walks leafward from every rootsplit node and emits in post-order, so
        leaves come first.
        """
        return postorder_depth_first(
            self.root_node_ids(),
            lambda i: chain(self._nodes[i].leafward_sorted, self._nodes[i].leafward_rotated),
        )

    # ------------------------------------------------------------------ #
    # Export
    # ------------------------------------------------------------------ #

    def to_networkx(self) -> nx.DiGraph:
        """Directed parent -> child graph; edges carry orientation and gpcsp index."""
        g = nx.DiGraph()
        for node in self._nodes:
            g.add_node(node.id, subsplit=node.subsplit.subsplit_to_string())
        for node in self._nodes:
            for rotated in (False, True):
                for child_id in node.leafward(rotated):
                    g.add_edge(
                        node.id,
                        child_id,
                        rotated=rotated,
                        gpcsp=self.gpcsp_index_of_edge(node.id, child_id, rotated),
                    )
        return g

    def to_string(self) -> str:
        return "\n".join(node.to_string() for node in self._nodes)

    def pcsp_indexer_to_string(self) -> str:
        lines = []
        for pcsp, idx in sorted(self._gpcsp_indexer.items(), key=lambda kv: kv[1]):
            text = pcsp.subsplit_to_string() if len(pcsp) == 2 * self.taxon_count else pcsp.pcsp_to_string()
            lines.append(f"{text}, {idx}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_string()
