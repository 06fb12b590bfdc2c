"""Tests for subsplit DAG construction and parameter indexing."""

from __future__ import annotations

import dataclasses

import networkx as nx
import pytest

from conftest import make_dag, random_dags
from gpdag.bitset import Bitset
from gpdag.dag import SubsplitDAG
from gpdag.errors import EmptyDAGError, InvalidPLVTypeError, MissingPCSPError, MissingSubsplitError
from gpdag.operations import PLVType
from gpdag.tree_sample import RootedTreeSample


def _b(text: str) -> Bitset:
    return Bitset.from_string(text)


def test_three_taxon_single_topology():
    dag = make_dag("((A,B),C);")
    assert dag.taxon_count == 3
    assert dag.rootsplits == (_b("001"),)
    assert dag.node_count == 5
    assert dag.edge_count == 4
    assert [n.subsplit for n in dag.nodes[:3]] == [_b("000100"), _b("000010"), _b("000001")]
    assert dag.get_node(3).subsplit == _b("010100")
    assert dag.get_node(4).subsplit == _b("001110")

    root = dag.get_node(4)
    assert root.is_root()
    assert root.leafward_sorted == (3,)
    assert root.leafward_rotated == (2,)
    cherry = dag.get_node(3)
    assert cherry.leafward_sorted == (0,)
    assert cherry.leafward_rotated == (1,)
    assert all(dag.get_node(i).is_leaf() for i in range(3))


def test_three_taxon_pcsp_indexer():
    dag = make_dag("((A,B),C);")
    expected = {
        _b("001110"): 0,
        _b("010100") + _b("000100"): 1,
        _b("100010") + _b("000010"): 2,
        _b("001110") + _b("010100"): 3,
        _b("110001") + _b("000001"): 4,
    }
    assert dict(dag.gpcsp_indexer) == expected
    assert dict(dag.subsplit_to_range) == {
        _b("010100"): (1, 2),
        _b("100010"): (2, 3),
        _b("001110"): (3, 4),
        _b("110001"): (4, 5),
    }
    assert dag.rootsplit_and_pcsp_count == 2
    assert dag.generalized_pcsp_count == 5


def test_shared_subtree_is_created_once():
    dag = make_dag("((A,B),(C,D));", "(((A,B),C),D);")
    single = [make_dag("((A,B),(C,D));").node_count, make_dag("(((A,B),C),D);").node_count]
    assert single == [7, 7]
    assert dag.node_count == 9
    assert dag.node_count < 2 * max(single)

    ab = _b("01001000")
    ab_id = dag.node_id_of(ab)
    assert [n.id for n in dag.nodes if n.subsplit == ab] == [ab_id]
    # (A,B) hangs below both rootsplits' subtrees.
    parents = {dag.node_id_of(_b("00101100")), dag.node_id_of(_b("00111100"))}
    assert set(dag.get_node(ab_id).rootward_sorted) == parents
    assert dag.get_node(ab_id).rootward_rotated == ()
    assert dag.edge_count == 10
    assert dag.generalized_pcsp_count == 12


def test_rootsplits_take_highest_ids_of_their_subtrees():
    dag = make_dag("((A,B),(C,D));", "(((A,B),C),D);")
    assert dag.root_node_ids() == [6, 8]
    for root_id in dag.root_node_ids():
        below = nx.descendants(dag.to_networkx(), root_id)
        assert all(i < root_id for i in below)


def test_leaf_nodes_and_unique_subsplits():
    for dag in random_dags():
        n = dag.taxon_count
        leaves = [node.id for node in dag.nodes if node.is_leaf()]
        assert leaves == list(range(n))
        for taxon in range(n):
            assert dag.get_node(taxon).subsplit == Bitset.zeros(n) + Bitset.singleton(n, taxon)
        subsplits = [node.subsplit for node in dag.nodes]
        assert len(set(subsplits)) == len(subsplits)


def test_adjacency_lists_are_inverse():
    for dag in random_dags():
        for node in dag.nodes:
            for rotated in (False, True):
                for child_id in node.leafward(rotated):
                    assert node.id in dag.get_node(child_id).rootward(rotated)
                for parent_id in node.rootward(rotated):
                    assert node.id in dag.get_node(parent_id).leafward(rotated)


def test_roots_are_exactly_rootsplit_nodes():
    for dag in random_dags():
        roots = [node.id for node in dag.nodes if node.is_root()]
        assert sorted(roots) == sorted(dag.root_node_ids())


def test_children_refine_second_clade():
    for dag in random_dags():
        for node in dag.iterate_over_real_nodes():
            for rotated in (False, True):
                clade = node.get_subsplit(rotated).split_chunk(1)
                for child_id in node.leafward(rotated):
                    child = dag.get_node(child_id).subsplit
                    assert child.split_chunk(0) | child.split_chunk(1) == clade


def test_dag_is_acyclic_with_ids_decreasing_leafward():
    for dag in random_dags():
        g = dag.to_networkx()
        assert nx.is_directed_acyclic_graph(g)
        assert all(u > v for u, v in g.edges)
        assert g.number_of_edges() == dag.edge_count


def test_parameter_ranges_partition_indices():
    for dag in random_dags():
        count = dag.generalized_pcsp_count
        assert len(dag.gpcsp_indexer) == count
        assert sorted(dag.gpcsp_indexer.values()) == list(range(count))

        ranges = sorted(dag.subsplit_to_range.values())
        cursor = dag.rootsplit_count
        for start, stop in ranges:
            assert start == cursor
            assert stop > start
            cursor = stop
        assert cursor == count

        for index, rootsplit in enumerate(dag.rootsplits):
            assert dag.gpcsp_index(rootsplit + ~rootsplit) == index


def test_every_edge_has_a_parameter_in_its_parent_range():
    for dag in random_dags():
        for node in dag.iterate_over_real_nodes():
            for rotated in (False, True):
                if not node.leafward(rotated):
                    continue
                start, stop = dag.subsplit_to_range[node.get_subsplit(rotated)]
                indices = [dag.gpcsp_index_of_edge(node.id, c, rotated) for c in node.leafward(rotated)]
                assert indices == list(range(start, stop))


def test_plv_index_layout():
    dag = make_dag("((A,B),C);")
    assert dag.plv_count == 30
    assert dag.plv_index(PLVType.P, 3) == 3
    assert dag.plv_index(PLVType.P_HAT, 3) == 8
    assert dag.plv_index(PLVType.P_HAT_TILDE, 3) == 13
    assert dag.plv_index(PLVType.R_HAT, 3) == 18
    assert dag.plv_index(PLVType.R, 3) == 23
    assert dag.plv_index(PLVType.R_TILDE, 3) == 28
    with pytest.raises(InvalidPLVTypeError):
        dag.plv_index(6, 0)


def test_lookup_failures_raise():
    dag = make_dag("((A,B),C);")
    with pytest.raises(MissingSubsplitError):
        dag.node_id_of(_b("100010"))
    with pytest.raises(MissingPCSPError):
        dag.gpcsp_index(_b("001110") + _b("000001"))
    with pytest.raises(KeyError):
        dag.gpcsp_index(_b("111111"))


def test_empty_sample_has_no_real_nodes():
    with pytest.raises(EmptyDAGError):
        SubsplitDAG(RootedTreeSample(["A", "B", "C"]))


def test_to_string_lists_every_node():
    dag = make_dag("((A,B),C);")
    text = dag.to_string()
    assert text.count("rootward sorted") == dag.node_count
    assert "4: 001|110" in text
    assert "001|110, 0" in dag.pcsp_indexer_to_string()


def test_nodes_are_frozen_after_construction():
    dag = make_dag("((A,B),(C,D));", "(((A,B),C),D);")
    root = dag.get_node(dag.root_node_ids()[0])
    assert isinstance(root.leafward_sorted, tuple)
    with pytest.raises(AttributeError):
        root.leafward_sorted.append(0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        root.rootward_sorted = (0,)
    for node in dag.nodes:
        for rotated in (False, True):
            assert isinstance(node.leafward(rotated), tuple)
            assert isinstance(node.rootward(rotated), tuple)
