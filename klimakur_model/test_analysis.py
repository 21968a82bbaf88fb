"""
Unit tests for the abatement cost curve, target comparison and cost sweeps.

Run with: pytest klimakur_model/test_analysis.py -v
"""

import numpy as np
import pytest

from .analysis import abatement_cost_curve, compare_targets
from .catalog import CATALOG, TARGET_SCENARIOS, MeasureRecord
from .model import GapMode, compute_view, project_rows
from .store import ParameterStore
from .sweep import CostSweeper, sweep_values


S01 = "S01 Teknisk-operasjonelle tiltak (energieffektivisering)"
T01 = "T01 Nullvekstmål for personbiltransporten"
T13 = "T13 Økt bruk av avansert flytende biodrivstoff i veitransport"


class TestCostCurve:
    """Tests for the abatement cost curve."""

    def test_cumulative_equals_grand_total(self):
        view = compute_view(ParameterStore.default(CATALOG))
        curve = abatement_cost_curve(view.selected_rows)
        assert curve.total_potential == pytest.approx(view.aggregation.grand_total.potential)
        assert curve.cumulative_cost[-1] == pytest.approx(view.aggregation.grand_total.cost)

    def test_ordered_by_unit_cost(self):
        view = compute_view(ParameterStore.default(CATALOG))
        costs = abatement_cost_curve(view.selected_rows).unit_costs
        assert costs == sorted(costs)

    def test_ties_keep_input_order(self):
        catalog = (
            MeasureRecord("A1 First", "CCS", 10, 500.0),
            MeasureRecord("A2 Dear", "CCS", 10, 2000.0),
            MeasureRecord("A3 Second", "CCS", 10, 500.0),
        )
        curve = abatement_cost_curve(project_rows(catalog, ParameterStore.default(catalog)))
        assert curve.titles == ["A1 First", "A3 Second", "A2 Dear"]
        assert curve.cumulative_potential == pytest.approx([0.01, 0.02, 0.03])

    def test_empty(self):
        curve = abatement_cost_curve([])
        assert curve.points == []
        assert curve.total_potential == 0.0
        assert curve.marginal_cost_for(1.0) is None

    def test_marginal_cost(self):
        catalog = (
            MeasureRecord("A1 Cheap", "CCS", 1000, 100.0),
            MeasureRecord("A2 Dear", "CCS", 1000, 900.0),
        )
        curve = abatement_cost_curve(project_rows(catalog, ParameterStore.default(catalog)))
        assert curve.marginal_cost_for(0) == 0.0
        assert curve.marginal_cost_for(0.5) == 100.0
        assert curve.marginal_cost_for(1.5) == 900.0
        assert curve.marginal_cost_for(2.5) is None

    def test_to_dict(self):
        catalog = (MeasureRecord("A1 Only", "CCS", 100, None),)
        d = abatement_cost_curve(project_rows(catalog, ParameterStore.default(catalog))).to_dict()
        assert d["points"][0]["is_assumed"] is True
        assert d["total_potential"] == pytest.approx(0.1)


class TestCompareTargets:
    """Tests for the per-target comparison."""

    def test_every_target(self):
        total = compute_view(ParameterStore.default(CATALOG)).aggregation.grand_total
        results = compare_targets(total)
        assert list(results) == list(TARGET_SCENARIOS)
        # Stricter targets leave a larger gap
        assert results["55"].gap <= results["70"].gap <= results["75"].gap

    def test_mode_passed_through(self):
        total = compute_view(ParameterStore.default(CATALOG)).aggregation.grand_total
        assert all(g.mode == GapMode.SIMPLE for g in compare_targets(total, mode=GapMode.SIMPLE).values())


class TestCostSweeper:
    """Tests for cost sensitivity sweeps."""

    @pytest.fixture
    def store(self):
        return ParameterStore.default(CATALOG)

    def test_default_cost_monotone(self, store):
        result = CostSweeper(store).sweep_default_unknown_cost([0, 1000, 2000, 3000])
        assert result.affected_titles == [S01]
        assert np.all(np.diff(result.total_cost) > 0)
        assert result.affected_potential == pytest.approx(0.13)

    def test_slope_matches_affected_potential(self, store):
        result = CostSweeper(store).sweep_default_unknown_cost([0, 1000])
        assert result.total_cost[1] - result.total_cost[0] == pytest.approx(result.cost_slope * 1000)

    def test_potential_constant(self, store):
        result = CostSweeper(store).sweep_default_unknown_cost([0, 5000])
        assert result.total_potential == pytest.approx(compute_view(store).aggregation.grand_total.potential)

    def test_overridden_unknown_not_affected(self, store):
        store = store.with_cost_override(S01, 100)
        result = CostSweeper(store).sweep_default_unknown_cost([0, 1000])
        assert result.affected_titles == []
        assert result.total_cost[0] == pytest.approx(result.total_cost[1])

    def test_override_sweep(self, store):
        result = CostSweeper(store).sweep_parameter("override:T01", [0, 1500])
        assert result.param_name == "override:T01"
        assert result.affected_titles == [T01]
        assert result.total_cost[1] - result.total_cost[0] == pytest.approx(760 * 1500 / 1e6)

    def test_range_sweep(self, store):
        result = CostSweeper(store).sweep_parameter("range:>1500", [0, 1000])
        tier = [m for m in CATALOG if m.cost_range_label == ">1500"]
        assert result.param_name == "range:>1500"
        assert set(result.affected_titles) == {m.title for m in tier}
        assert result.affected_potential == pytest.approx(sum(m.potential_mt for m in tier))
        assert result.total_cost[1] - result.total_cost[0] == pytest.approx(result.cost_slope * 1000)

    def test_range_sweep_skips_overridden(self, store):
        store = store.with_cost_override(T13, 100)
        result = CostSweeper(store).sweep_range_cost(">1500", [0, 1000])
        assert T13 not in result.affected_titles
        assert result.total_cost[1] - result.total_cost[0] == pytest.approx(result.cost_slope * 1000)

    def test_unknown_tier_sweeps_default_cost(self, store):
        result = CostSweeper(store).sweep_range_cost("Varierer", [0, 1000])
        assert result.param_name == "range:Varierer"
        assert result.affected_titles == [S01]
        with pytest.raises(ValueError):
            CostSweeper(store).sweep_range_cost("1500-3000", [1])

    def test_deselected_measure_moves_nothing(self, store):
        result = CostSweeper(store.toggled(T01)).sweep_override("T01", [0, 1500])
        assert result.total_cost[0] == pytest.approx(result.total_cost[1])
        assert result.affected_potential == 0.0

    def test_does_not_mutate_store(self, store):
        sweeper = CostSweeper(store)
        sweeper.sweep_override("T01", [1, 2])
        assert sweeper.store == store

    def test_unknown_parameter(self, store):
        with pytest.raises(ValueError):
            CostSweeper(store).sweep_parameter("discount_rate", [1])
        with pytest.raises(KeyError):
            CostSweeper(store).sweep_override("ZZ9", [1])

    def test_sweep_values(self):
        assert sweep_values(0, 3000, 7) == [0.0, 500.0, 1000.0, 1500.0, 2000.0, 2500.0, 3000.0]
