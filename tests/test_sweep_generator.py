"""Tests for the sweep_generator parameter sweep."""

from __future__ import annotations

import csv
from pathlib import Path

import pytest

from sweep_generator import FIELDNAMES, generate_dataset, param_product, run_experiment_and_collect


class TestRunExperiment:
    def test_one_row_per_cycle(self) -> None:
        rows = run_experiment_and_collect(1, dimension=5, preference_strength=50,
                                          vacancy=20, endline=60, max_cycles=3)
        assert [r["cycle"] for r in rows] == [0, 1, 2, 3]
        assert all(r["experiment_length"] == 4 for r in rows)
        assert rows[0]["moves"] == 0

    def test_population_constant(self) -> None:
        rows = run_experiment_and_collect(1, dimension=5, preference_strength=80,
                                          vacancy=20, endline=60, max_cycles=5)
        for r in rows:
            assert (r["vacant"], r["endline_agents"], r["newline_agents"]) == (5, 12, 8)

    def test_happiness_in_unit_interval(self) -> None:
        rows = run_experiment_and_collect(2, dimension=9, preference_strength=60,
                                          vacancy=30, endline=50, max_cycles=4,
                                          symmetric_edges=True)
        assert all(0.0 <= r["happiness"] <= 1.0 for r in rows)
        assert all(r["clusters"] >= 2 for r in rows)

    def test_settled_cycle_follows_a_quiet_scan(self) -> None:
        rows = run_experiment_and_collect(3, dimension=12, preference_strength=40,
                                          vacancy=20, endline=60, max_cycles=30)
        settled = rows[0]["settled_cycle"]
        if settled is not None:
            assert rows[settled]["moves"] == 0
            assert all(r["moves"] > 0 for r in rows[1:settled])

    def test_rejects_invalid_dimension(self) -> None:
        with pytest.raises(ValueError, match="dimension"):
            run_experiment_and_collect(1, dimension=3, preference_strength=50,
                                       vacancy=20, endline=60, max_cycles=1)


class TestParamProduct:
    def test_cartesian_product(self) -> None:
        combos = param_product({"dimension": [5, 6], "vacancy": [10, 20, 30]})
        assert len(combos) == 6
        assert {"dimension": 6, "vacancy": 30} in combos


class TestGenerateDataset:
    def test_writes_all_rows(self, tmp_path: Path) -> None:
        out = tmp_path / "sweep.csv"
        n = generate_dataset(str(out), {"dimension": [5, 6], "vacancy": 20},
                             seeds=(41, 7), max_cycles=2)
        assert n == 4
        with open(out, newline="") as f:
            reader = csv.DictReader(f)
            assert reader.fieldnames == FIELDNAMES
            rows = list(reader)
        assert len(rows) == 4 * 3
        assert {r["seed"] for r in rows} == {"41", "7"}
        assert {r["experiment_id"] for r in rows} == {"1", "2", "3", "4"}
