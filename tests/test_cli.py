"""CLI integration tests."""

from __future__ import annotations

import io
from contextlib import redirect_stdout

from gpdag import cli


def _write_trees(path, trees=("((A,B),(C,D));", "(((A,B),C),D);")):
    path.write_text("\n".join(trees) + "\n", encoding="utf-8")


def test_cli_summary_stdout(tmp_path):
    inp = tmp_path / "trees.nwk"
    _write_trees(inp)

    buf = io.StringIO()
    with redirect_stdout(buf):
        code = cli.main([str(inp)])
    assert code == 0
    lines = buf.getvalue().strip().splitlines()
    assert lines == [
        "taxa: A,B,C,D",
        "nodes: 9",
        "edges: 10",
        "rootsplits: 2",
        "generalized PCSPs: 12",
        "PLVs: 54",
    ]


def test_cli_writes_operations_to_output_file(tmp_path):
    inp = tmp_path / "trees.nwk"
    out = tmp_path / "report.txt"
    _write_trees(inp, ["((A,B),C);"])

    code = cli.main(
        [
            str(inp),
            "--output",
            str(out),
            "--operations",
            "rootward-pass",
            "--operations",
            "marginal-likelihood",
        ]
    )
    assert code == 0
    text = out.read_text(encoding="utf-8")
    body = text.split("# rootward-pass\n", 1)[1]
    rootward, marginal = body.split("# marginal-likelihood\n")
    assert rootward.splitlines() == [
        "EvolvePLVWeightedBySBNParameter(8 += q[1] * 0)",
        "EvolvePLVWeightedBySBNParameter(13 += q[2] * 1)",
        "Multiply(3 = 8 * 13)",
        "EvolvePLVWeightedBySBNParameter(9 += q[3] * 3)",
        "EvolvePLVWeightedBySBNParameter(14 += q[4] * 2)",
        "Multiply(4 = 9 * 14)",
    ]
    assert len(marginal.splitlines()) == 1


def test_cli_prints_dag_and_indexer(tmp_path):
    inp = tmp_path / "trees.nwk"
    _write_trees(inp, ["((A,B),C);"])

    buf = io.StringIO()
    with redirect_stdout(buf):
        code = cli.main([str(inp), "--print-dag", "--print-pcsp-indexer"])
    assert code == 0
    out = buf.getvalue()
    assert "4: 001|110" in out
    assert "001|110, 0" in out


def test_cli_explicit_taxon_order(tmp_path):
    inp = tmp_path / "trees.nwk"
    _write_trees(inp, ["((A,B),C);"])

    buf = io.StringIO()
    with redirect_stdout(buf):
        code = cli.main([str(inp), "--taxa", "C,B,A"])
    assert code == 0
    assert buf.getvalue().splitlines()[0] == "taxa: C,B,A"


def test_cli_rejects_bad_input(tmp_path):
    inp = tmp_path / "trees.nwk"
    _write_trees(inp, ["((A,B),C);"])
    assert cli.main([str(inp), "--taxa", "A,A,B"]) == 2

    multifurcating = tmp_path / "poly.nwk"
    _write_trees(multifurcating, ["(A,B,C);"])
    assert cli.main([str(multifurcating)]) == 1

    empty = tmp_path / "empty.nwk"
    empty.write_text("\n", encoding="utf-8")
    assert cli.main([str(empty)]) == 1
