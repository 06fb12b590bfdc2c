import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
PKG_ROOT = ROOT / "gpdag"
if str(PKG_ROOT) not in sys.path:
    sys.path.insert(0, str(PKG_ROOT))

from gpdag.dag import SubsplitDAG  # noqa: E402
from gpdag.tree_sample import RootedTreeSample  # noqa: E402


def make_dag(*newicks: str) -> SubsplitDAG:
    return SubsplitDAG(RootedTreeSample.of_newick(list(newicks)))


def random_newick(rng: np.random.Generator, taxa: list[str]) -> str:
    """Random rooted binary topology built by merging random pairs."""
    pool = list(taxa)
    while len(pool) > 1:
        i, j = sorted(int(x) for x in rng.choice(len(pool), size=2, replace=False))
        pool[i] = f"({pool[i]},{pool[j]})"
        del pool[j]
    return pool[0] + ";"


def random_dags(seed: int = 11, samples_per_size: int = 3, max_trees: int = 9):
    """DAGs over 3 to 8 taxa, each built from a handful of random topologies."""
    rng = np.random.default_rng(seed)
    for taxon_count in range(3, 9):
        taxa = [f"T{i}" for i in range(taxon_count)]
        for _ in range(samples_per_size):
            n_trees = int(rng.integers(1, max_trees + 1))
            yield make_dag(*(random_newick(rng, taxa) for _ in range(n_trees)))
