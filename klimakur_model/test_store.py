"""
Unit tests for the parameter store.

Run with: pytest klimakur_model/test_store.py -v
"""

import math

import pytest

from .catalog import CATALOG, catalog_titles
from .store import (
    DEFAULT_UNKNOWN_COST,
    ParameterStore,
    SelectionState,
    coerce_cost,
    selection_state,
)


T01 = "T01 Nullvekstmål for personbiltransporten"
T02 = "T02 Overføring av gods fra vei til sjø og bane"


class TestCoerceCost:
    """Tests for unit-cost input coercion."""

    def test_number(self):
        assert coerce_cost(800) == 800.0

    def test_rounds_half_up(self):
        assert coerce_cost(799.5) == 800.0
        assert coerce_cost(799.4) == 799.0

    def test_negative_clamps_to_zero(self):
        assert coerce_cost(-250) == 0.0

    def test_numeric_string(self):
        assert coerce_cost(" 1 250,6 ") == 1251.0

    @pytest.mark.parametrize("value", ["abc", "", None, True, math.nan, math.inf])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            coerce_cost(value)


class TestParameterStore:
    """Tests for ParameterStore mutations."""

    @pytest.fixture
    def store(self):
        return ParameterStore.default(CATALOG)

    def test_default_selects_everything(self, store):
        assert store.selection == frozenset(catalog_titles(CATALOG))
        assert store.default_unknown_cost == DEFAULT_UNKNOWN_COST
        assert store.selected_target == "70"
        assert store.cost_overrides == {}

    def test_updates_return_new_store(self, store):
        updated = store.with_cost_override(T01, 900)
        assert updated is not store
        assert store.cost_overrides == {}
        assert updated.cost_overrides == {T01: 900.0}

    def test_override_can_be_removed(self, store):
        updated = store.with_cost_override(T01, 900).without_cost_override(T01)
        assert updated.cost_overrides == {}
        assert store.without_cost_override(T01) is store

    def test_stale_override_is_accepted(self, store):
        """Overrides for unknown titles are stored and ignored downstream."""
        assert store.with_cost_override("ZZ1 Gone", 10).cost_overrides == {"ZZ1 Gone": 10.0}

    def test_reset_costs(self, store):
        updated = store.with_cost_override(T01, 900).with_default_unknown_cost(3000)
        reset = updated.reset_costs()
        assert reset.cost_overrides == {}
        assert reset.default_unknown_cost == DEFAULT_UNKNOWN_COST

    def test_reset_costs_clears_tiers(self, store):
        updated = store.with_range_cost(">1500", 2500).with_range_cost("Varierer", 400)
        reset = updated.reset_costs()
        assert reset.range_costs == {}
        assert reset.range_cost(">1500") == 2000.0
        assert reset.default_unknown_cost == DEFAULT_UNKNOWN_COST
        assert reset.selection == updated.selection

    def test_unknown_target_rejected(self, store):
        with pytest.raises(ValueError):
            store.with_target("90")

    def test_target(self, store):
        assert store.with_target("55").selected_target == "55"

    def test_toggle(self, store):
        off = store.toggled(T01)
        assert T01 not in off.selection
        assert T01 in off.toggled(T01).selection

    def test_select_and_deselect(self, store):
        none = store.with_selection([])
        assert none.selection == frozenset()
        assert none.select_titles([T01, T02]).selection == {T01, T02}
        assert T02 not in store.deselect_titles([T02]).selection

    def test_filters_validated(self, store):
        assert store.with_filter_category("Jordbruk").filter_category == "Jordbruk"
        assert store.with_filter_cost_type("assumed").filter_cost_type == "assumed"
        with pytest.raises(ValueError):
            store.with_filter_category("Luftfart")
        with pytest.raises(ValueError):
            store.with_filter_cost_type("cheap")

    def test_search_text_none(self, store):
        assert store.with_search_text(None).search_text == ""

    def test_reset_all_idempotent(self, store):
        """Resetting twice equals resetting once."""
        changed = (store.with_target("75").toggled(T01)
                   .with_cost_override(T02, 10).with_sort("cost"))
        once = changed.reset_all(CATALOG)
        assert once == store
        assert once.reset_all(CATALOG) == once


class TestSort:
    """Tests for sort-column cycling."""

    def test_new_column_starts_ascending(self):
        store = ParameterStore().with_sort("cost")
        assert (store.sort_column, store.sort_direction) == ("cost", "asc")

    def test_same_column_toggles(self):
        store = ParameterStore().with_sort("cost").with_sort("cost")
        assert store.sort_direction == "desc"
        assert store.with_sort("cost").sort_direction == "asc"

    def test_switching_column_resets_direction(self):
        store = ParameterStore().with_sort("cost").with_sort("cost").with_sort("title")
        assert (store.sort_column, store.sort_direction) == ("title", "asc")

    def test_explicit_direction(self):
        assert ParameterStore().with_sort("potential", "desc").sort_direction == "desc"

    def test_clear(self):
        store = ParameterStore().with_sort("potential", "desc").with_sort(None)
        assert store.sort_column is None
        assert store.sort_direction == "asc"

    def test_invalid(self):
        with pytest.raises(ValueError):
            ParameterStore().with_sort("colour")
        with pytest.raises(ValueError):
            ParameterStore().with_sort("cost", "up")


class TestSelectionState:
    """Tests for the tri-state select-all control."""

    def test_all(self):
        assert selection_state(["a", "b"], frozenset({"a", "b", "c"})) == SelectionState.ALL

    def test_some(self):
        assert selection_state(["a", "b"], frozenset({"a"})) == SelectionState.SOME

    def test_none(self):
        assert selection_state(["a", "b"], frozenset({"c"})) == SelectionState.NONE

    def test_empty_visible_set(self):
        assert selection_state([], frozenset({"a"})) == SelectionState.NONE


class TestRangeCosts:
    """Tests for repricing whole cost-range tiers."""

    @pytest.fixture
    def store(self):
        return ParameterStore.default(CATALOG)

    def test_defaults(self, store):
        assert store.range_cost("<500") == 500.0
        assert store.range_cost("500-1500") == 1500.0
        assert store.range_cost(">1500") == 2000.0
        assert store.range_cost("Varierer") == DEFAULT_UNKNOWN_COST
        assert store.range_cost("1-2") is None

    def test_set_tier(self, store):
        updated = store.with_range_cost(">1500", "2 500")
        assert updated.range_costs == {">1500": 2500.0}
        assert updated.range_cost(">1500") == 2500.0
        assert store.range_costs == {}

    def test_value_coerced(self, store):
        assert store.with_range_cost("<500", -20).range_costs == {"<500": 0.0}
        assert store.with_range_cost("<500", 299.5).range_costs == {"<500": 300.0}

    def test_catalog_value_drops_entry(self, store):
        updated = store.with_range_cost("<500", 300).with_range_cost("<500", 500)
        assert updated.range_costs == {}

    def test_unknown_tier_sets_default_cost(self, store):
        updated = store.with_range_cost("Varierer", 800)
        assert updated.default_unknown_cost == 800.0
        assert updated.range_costs == {}

    def test_without_range_cost(self, store):
        updated = store.with_range_cost(">1500", 2500).with_range_cost("Varierer", 800)
        assert updated.without_range_cost(">1500").range_costs == {}
        assert updated.without_range_cost("Varierer").default_unknown_cost == DEFAULT_UNKNOWN_COST
        assert store.without_range_cost("<500") is store

    def test_rejects_invalid(self, store):
        with pytest.raises(ValueError, match="Unknown cost range"):
            store.with_range_cost("1500-3000", 100)
        with pytest.raises(ValueError):
            store.with_range_cost(">1500", "dyrt")
