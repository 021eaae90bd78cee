#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# =============================================================================
# File name: sweep_generator.py
# Author: AM 2914 D
# Date created: 2026-10-19
# Version = "1.0"
# License =  "CC0 1.0"
# Listening = "Piano Concerto No. 2 in C minor, Op. 18 - Sergei Rachmaninoff (1901)"
# =============================================================================
"""Run many bracetopia simulations sweeping their parameters"""
# =============================================================================

"""
Example usage:
    python sweep_generator.py --out results.csv --cycles 50 --seeds 41 7

Notes:
    - Runs headless: no frames are printed and no delay is applied between cycles.
    - One CSV row is written per rendered cycle, so a run of max_cycles=N gives
      N + 1 rows (cycle 0 shows the initial grid).
"""

from bracetopia_sim import Cell, SimConfig, SimulationState, count_clusters, run_cycles, team_happiness, DIMENSION, ENDLINE, PREF_STRENGTH, SEED, VACANCY

import argparse
import csv
import itertools
import logging
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

FIELDNAMES: List[str] = [
    "experiment_id",
    "cycle",
    "experiment_length",
    "settled_cycle",
    "dimension",
    "preference_strength",
    "vacancy",
    "endline",
    "max_cycles",
    "seed",
    "symmetric_edges",
    "moves",
    "happiness",
    "clusters",
    "vacant",
    "endline_agents",
    "newline_agents",
]


# --- Helper: run a single experiment and collect per-cycle data ---


def run_experiment_and_collect(
    experiment_id: int,
    dimension: int,
    preference_strength: int,
    vacancy: int,
    endline: int,
    max_cycles: int,
    seed: int = SEED,
    symmetric_edges: bool = False,
) -> List[Dict[str, Any]]:
    """
    Run a single headless simulation and collect one data row per cycle.

    Parameters:
        experiment_id: Unique integer id for this experiment.
        dimension: Side length of the grid.
        preference_strength: Happiness threshold in percent.
        vacancy: Percent of vacant cells.
        endline: Percent of occupied cells holding endline agents.
        max_cycles: Last cycle index to record.
        seed: Seed of the shuffle generator.
        symmetric_edges: Let cells at index 1 see their neighbours at index 0.

    Returns:
        A list of dictionaries, one per cycle, holding the configuration, the
        moves made by the previous scan, team happiness, same-kind cluster count
        and agent counts. Every row also carries experiment_length (cycles run)
        and settled_cycle (first cycle after a scan with no moves, or None).
    """
    config = SimConfig(
        dimension=dimension,
        preference_strength=preference_strength,
        vacancy=vacancy,
        endline=endline,
        max_cycles=max_cycles,
        seed=seed,
        symmetric_edges=symmetric_edges,
    ).validate()
    state = SimulationState.create(config)
    rows: List[Dict[str, Any]] = []

    def record(frame: str) -> None:
        # the frame text is not needed, the state is read directly
        grid = state.grid
        rows.append({
            "experiment_id": experiment_id,
            "cycle": state.cycle,
            "dimension": dimension,
            "preference_strength": preference_strength,
            "vacancy": vacancy,
            "endline": endline,
            "max_cycles": max_cycles,
            "seed": seed,
            "symmetric_edges": symmetric_edges,
            "moves": state.moves_this_cycle,
            "happiness": team_happiness(grid, symmetric_edges),
            "clusters": count_clusters(grid),
            "vacant": int(np.count_nonzero(grid == Cell.VACANT)),
            "endline_agents": int(np.count_nonzero(grid == Cell.ENDLINE)),
            "newline_agents": int(np.count_nonzero(grid == Cell.NEWLINE)),
        })

    run_cycles(state, record, sleep=lambda seconds: None)

    settled_cycle: Optional[int] = None
    for r in rows:
        if r["cycle"] > 0 and r["moves"] == 0:
            settled_cycle = r["cycle"]
            break

    for r in rows:
        r["experiment_length"] = state.cycle
        r["settled_cycle"] = settled_cycle

    return rows


# --- Parameter sweep utilities ---
def param_product(params: Dict[str, Iterable[Any]]) -> List[Dict[str, Any]]:
    """
    Produce the Cartesian product of sweep parameters.

    Parameters:
        params: Mapping from parameter name to an iterable of candidate values.

    Returns:
        A list of dictionaries; each dictionary is one combination mapping parameter
        names to scalar values.
    """

    keys = list(params.keys())
    vals = [list(params[k]) for k in keys]
    combos = []
    for prod in itertools.product(*vals):
        combos.append({k: v for k, v in zip(keys, prod)})
    return combos


# --- Main entrypoint for dataset generation ---
def generate_dataset(
    out_csv: str,
    sweep_params: Dict[str, Any],
    seeds: Iterable[int] = (SEED,),
    max_cycles: int = 50,
) -> int:
    """
    Sweep parameters, run simulations, and write a per-cycle CSV.

    Parameters:
        out_csv: Path to the output CSV file to write.
        sweep_params: Dict specifying parameter names and values to sweep.
            Supported keys: dimension, preference_strength, vacancy, endline,
            symmetric_edges. Each value may be a scalar or an iterable.
        seeds: Iterable of shuffle seeds to run for each parameter combination.
        max_cycles: Last cycle recorded by every run.

    Returns:
        Number of experiments run.
    """

    # Normalize sweep params values to lists
    norm_params = {}
    for k, v in sweep_params.items():
        if isinstance(v, (list, tuple, set, range, np.ndarray)):
            norm_params[k] = list(v)
        else:
            norm_params[k] = [v]

    combos = param_product(norm_params)

    exp_id = 0
    with open(out_csv, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()

        for combo in combos:
            for seed in seeds:
                exp_id += 1
                rows = run_experiment_and_collect(
                    experiment_id=exp_id,
                    dimension=int(combo.get("dimension", DIMENSION)),
                    preference_strength=int(combo.get("preference_strength", PREF_STRENGTH)),
                    vacancy=int(combo.get("vacancy", VACANCY)),
                    endline=int(combo.get("endline", ENDLINE)),
                    max_cycles=max_cycles,
                    seed=int(seed),
                    symmetric_edges=bool(combo.get("symmetric_edges", False)),
                )
                logger.info("experiment %d: %s seed=%d, settled at %s",
                            exp_id, combo, seed, rows[-1]["settled_cycle"])
                writer.writerows(rows)

    print(f"Finished writing dataset to {out_csv}")
    return exp_id


# --- CLI ---
def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate CSV dataset by sweeping bracetopia params.")
    parser.add_argument("--out", type=str,
                        default="dataset.csv", help="output CSV file")
    parser.add_argument("--seeds", type=int, nargs="+",
                        default=[SEED], help="list of shuffle seeds to run")
    parser.add_argument("--cycles", type=int,
                        default=50, help="cycles recorded per experiment")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")

    # Example sweep: you can edit this block to specify the parameter grid to sweep.
    sweep = {
        "dimension": [15, 25],
        "preference_strength": [30, 50, 70],
        "vacancy": [10, 20],
        "endline": [50, 60],
    }

    generate_dataset(
        out_csv=args.out,
        sweep_params=sweep,
        seeds=args.seeds,
        max_cycles=args.cycles,
    )


if __name__ == "__main__":
    main()
