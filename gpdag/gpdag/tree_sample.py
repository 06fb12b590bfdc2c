"""Weighted samples of rooted tree topologies and their subsplit counters."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple

import treeswift

from .bitset import Bitset

PCSP = Tuple[Bitset, Bitset]


@dataclass(frozen=True)
class RootedTopology:
    """A rooted bifurcating topology reduced to its subsplit relations.

    ``pcsps`` holds ``(parent, child)`` pairs where ``parent`` is the parent
    subsplit oriented so its second clade is the one ``child`` splits.
    """

    rootsplit: Bitset
    pcsps: Tuple[PCSP, ...]


def parse_newick(newick: str) -> treeswift.Tree:
    """Parse one rooted Newick string with treeswift."""
    if hasattr(treeswift, "read_tree_newick"):
        return treeswift.read_tree_newick(newick)
    return treeswift.read_tree(io.StringIO(newick), "newick")


def read_rooted_trees(path: str) -> List[treeswift.Tree]:
    """Read rooted Newick trees from a file (one per line)."""
    trees: List[treeswift.Tree] = []
    with open(path, "r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            trees.append(parse_newick(line))
    return trees


def leaf_labels(tree: treeswift.Tree) -> List[str]:
    return [str(node.label) for node in tree.traverse_leaves()]


def rooted_topology_of(tree: treeswift.Tree, taxon_index: Mapping[str, int]) -> RootedTopology:
    """Reduce a rooted bifurcating tree to its rootsplit and PCSPs."""
    taxon_count = len(taxon_index)
    if tree.root.is_leaf():
        raise ValueError("Rooted trees need at least two taxa")
    clades: Dict[treeswift.Node, Bitset] = {}
    for node in tree.root.traverse_postorder():
        if node.is_leaf():
            label = str(node.label)
            if label not in taxon_index:
                raise ValueError(f"Unknown taxon in tree: {label}")
            clades[node] = Bitset.singleton(taxon_count, taxon_index[label])
            continue
        if len(node.children) != 2:
            raise ValueError(
                f"Rooted trees must be bifurcating; found a node with {len(node.children)} children"
            )
        left, right = node.children
        clades[node] = clades[left] | clades[right]

    root_clade = clades[tree.root]
    if root_clade.count() != taxon_count or len(clades) - 1 != 2 * (taxon_count - 1):
        raise ValueError("Each tree must contain every taxon exactly once")

    left, right = tree.root.children
    rootsplit = min(clades[left], clades[right])

    pcsps: List[PCSP] = []
    for node in tree.root.traverse_preorder():
        if node.is_leaf() or node is tree.root:
            continue
        sibling = next(ch for ch in node.parent.children if ch is not node)
        parent = clades[sibling] + clades[node]
        first, second = node.children
        pcsps.append((parent, Bitset.subsplit_of_pair(clades[first], clades[second])))
    return RootedTopology(rootsplit=rootsplit, pcsps=tuple(sorted(pcsps)))


class RootedTreeSample:
    """Weighted multiset of rooted topologies over a fixed taxon set."""

    def __init__(self, taxa: Sequence[str]):
        if len(set(taxa)) != len(taxa):
            raise ValueError("Taxon names must be unique")
        self.taxa: Tuple[str, ...] = tuple(str(t) for t in taxa)
        self.taxon_index: Dict[str, int] = {t: i for i, t in enumerate(self.taxa)}
        self.topology_counter: Dict[RootedTopology, float] = {}

    @property
    def taxon_count(self) -> int:
        return len(self.taxa)

    def __len__(self) -> int:
        return len(self.topology_counter)

    def add_topology(self, topology: RootedTopology, weight: float = 1.0) -> None:
        if len(topology.rootsplit) != self.taxon_count:
            raise ValueError("Topology does not match the sample's taxon count")
        if weight <= 0.0:
            raise ValueError("weight must be > 0")
        self.topology_counter[topology] = self.topology_counter.get(topology, 0.0) + float(weight)

    def add_tree(self, tree: treeswift.Tree, weight: float = 1.0) -> RootedTopology:
        topology = rooted_topology_of(tree, self.taxon_index)
        self.add_topology(topology, weight)
        return topology

    @classmethod
    def of_trees(
        cls,
        trees: Sequence[treeswift.Tree],
        taxa: Sequence[str] | None = None,
        weights: Sequence[float] | None = None,
    ) -> "RootedTreeSample":
        """Build a sample from trees; taxa default to the sorted leaf labels of the first tree."""
        if not trees:
            raise ValueError("At least one tree is required")
        if weights is not None and len(weights) != len(trees):
            raise ValueError("weights must have same length as trees")
        if taxa is None:
            taxa = sorted(leaf_labels(trees[0]))
        sample = cls(taxa)
        for i, tree in enumerate(trees):
            sample.add_tree(tree, 1.0 if weights is None else float(weights[i]))
        return sample

    @classmethod
    def of_newick(
        cls,
        newicks: Sequence[str],
        taxa: Sequence[str] | None = None,
        weights: Sequence[float] | None = None,
    ) -> "RootedTreeSample":
        return cls.of_trees([parse_newick(nwk) for nwk in newicks], taxa=taxa, weights=weights)

    def rootsplit_counter(self) -> Dict[Bitset, float]:
        """Rootsplit -> total weight, in first-seen order."""
        counter: Dict[Bitset, float] = {}
        for topology, weight in self.topology_counter.items():
            counter[topology.rootsplit] = counter.get(topology.rootsplit, 0.0) + weight
        return counter

    def pcsp_counter(self) -> Dict[Bitset, Dict[Bitset, float]]:
        """Parent subsplit -> (child subsplit -> total weight), in first-seen order."""
        counter: Dict[Bitset, Dict[Bitset, float]] = {}
        for topology, weight in self.topology_counter.items():
            for parent, child in topology.pcsps:
                children = counter.setdefault(parent, {})
                children[child] = children.get(child, 0.0) + weight
        return counter
