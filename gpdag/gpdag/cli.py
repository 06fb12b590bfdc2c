"""GPDAG command-line interface."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Dict, List, Sequence

from .dag import SubsplitDAG
from .operations import GPOperation
from .scheduler import (
    branch_length_optimization,
    compute_likelihoods,
    leafward_pass,
    marginal_likelihood,
    rootward_pass,
    sbn_parameter_optimization,
    set_leafward_zero,
    set_rhat_to_stationary,
    set_rootward_zero,
)
from .tree_sample import RootedTreeSample, read_rooted_trees

OPERATION_PROGRAMS: Dict[str, Callable[[SubsplitDAG], List[GPOperation]]] = {
    "likelihoods": compute_likelihoods,
    "marginal-likelihood": marginal_likelihood,
    "rootward-pass": rootward_pass,
    "leafward-pass": leafward_pass,
    "rootward-zero": set_rootward_zero,
    "leafward-zero": set_leafward_zero,
    "rhat-stationary": set_rhat_to_stationary,
    "branch-lengths": branch_length_optimization,
    "sbn-parameters": sbn_parameter_optimization,
}


def _parse_taxa_arg(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    taxa = [x.strip() for x in raw.split(",") if x.strip()]
    return taxa if taxa else None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gpdag",
        description="Build a subsplit DAG from rooted trees (Newick, one tree per line).",
    )
    parser.add_argument("input", help="Path to input file of rooted trees (Newick, one per line).")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Optional output path for the report. Defaults to stdout.",
    )
    parser.add_argument(
        "--taxa",
        default=None,
        help="Optional comma-separated taxon order. Defaults to sorted leaf labels.",
    )
    parser.add_argument(
        "--operations",
        choices=sorted(OPERATION_PROGRAMS),
        action="append",
        default=[],
        help="Operation program to print. May be given more than once.",
    )
    parser.add_argument("--print-dag", action="store_true", help="Print every DAG node and its neighbors.")
    parser.add_argument(
        "--print-pcsp-indexer",
        action="store_true",
        help="Print the generalized PCSP parameter indices.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log progress (-vv for debug).")
    return parser


def _summary_lines(dag: SubsplitDAG, taxa: Sequence[str]) -> list[str]:
    return [
        f"taxa: {','.join(taxa)}",
        f"nodes: {dag.node_count}",
        f"edges: {dag.edge_count}",
        f"rootsplits: {dag.rootsplit_count}",
        f"generalized PCSPs: {dag.generalized_pcsp_count}",
        f"PLVs: {dag.plv_count}",
    ]


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
        )

    taxa = _parse_taxa_arg(args.taxa)
    if taxa is not None and len(set(taxa)) != len(taxa):
        print("error: --taxa must not repeat taxon names", file=sys.stderr)
        return 2

    try:
        trees = read_rooted_trees(args.input)
    except Exception as exc:  # pragma: no cover - error path
        print(f"error: failed reading input trees: {exc}", file=sys.stderr)
        return 1
    if not trees:
        print("error: no trees loaded from input file", file=sys.stderr)
        return 1

    try:
        sample = RootedTreeSample.of_trees(trees, taxa=taxa)
        dag = SubsplitDAG(sample)
    except ValueError as exc:
        print(f"error: could not build subsplit DAG: {exc}", file=sys.stderr)
        return 1

    lines = _summary_lines(dag, sample.taxa)
    if args.print_dag:
        lines.append(dag.to_string())
    if args.print_pcsp_indexer:
        lines.append(dag.pcsp_indexer_to_string())
    for name in args.operations:
        lines.append(f"# {name}")
        lines.extend(str(op) for op in OPERATION_PROGRAMS[name](dag))
    report = "\n".join(lines)

    if args.output:
        try:
            with open(args.output, "w", encoding="utf-8") as handle:
                handle.write(report + "\n")
        except Exception as exc:  # pragma: no cover - error path
            print(f"error: failed writing output: {exc}", file=sys.stderr)
            return 1
    else:
        print(report)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
