"""
Unit tests for session configuration.

Run with: pytest klimakur_model/test_config.py -v
"""

import json
from pathlib import Path

import pytest

from .catalog import CATALOG, REFERENCE_TRAJECTORY
from .codec import encode
from .config import (
    DashboardConfig,
    ParametersSpec,
    SweepSpec,
    TrajectorySpec,
    load_config,
    save_config,
    validate_config,
)
from .model import GapMode
from .store import ParameterStore


T05 = "T05 100% av nye personbiler er elektriske innen 2025"


@pytest.fixture
def config_dict():
    return {
        "name": "high_unknown_cost",
        "description": "Unknown costs priced high, no biofuel",
        "gap_mode": "simple",
        "trajectory": {"current_level": 45.0},
        "parameters": {
            "default_unknown_cost": 2500,
            "target": "55",
            "cost_overrides": {"T01": 900},
            "range_costs": {">1500": 2500},
            "exclude": ["T13", "O01"],
            "sort_column": "cost",
            "sort_direction": "desc",
        },
        "sweep": {"parameter": "default_unknown_cost", "start": 0, "stop": 3000, "num": 4},
    }


class TestDashboardConfig:
    """Tests for config (de)serialization."""

    def test_from_dict(self, config_dict):
        config = DashboardConfig.from_dict(config_dict)
        assert config.name == "high_unknown_cost"
        assert config.mode == GapMode.SIMPLE
        assert config.parameters.default_unknown_cost == 2500
        assert config.parameters.exclude == ["T13", "O01"]
        assert config.parameters.range_costs == {">1500": 2500}
        assert config.is_sweep()
        assert config.sweep.resolve_values() == [0.0, 1000.0, 2000.0, 3000.0]

    def test_defaults(self):
        config = DashboardConfig.from_dict({})
        assert config.name == "unnamed"
        assert config.mode == GapMode.BASELINE_DECOMPOSITION
        assert not config.is_sweep()
        assert config.to_store() == ParameterStore.default(CATALOG)
        assert config.to_trajectory() == REFERENCE_TRAJECTORY

    def test_round_trip(self, config_dict):
        config = DashboardConfig.from_dict(config_dict)
        assert DashboardConfig.from_dict(config.to_dict()) == config

    def test_trajectory_override(self):
        trajectory = TrajectorySpec(reference_level=30.0).to_trajectory()
        assert trajectory.reference_level == 30.0
        assert trajectory.baseline_1990 == REFERENCE_TRAJECTORY.baseline_1990


class TestParametersApply:
    """Tests for building the starting store."""

    def test_exclude_by_id_and_title(self):
        store = ParametersSpec(exclude=["O01", T05]).apply(ParameterStore.default(CATALOG))
        excluded = {m.title for m in CATALOG} - store.selection
        assert T05 in excluded
        assert len(excluded) == 3

    def test_overrides_by_id(self):
        store = ParametersSpec(cost_overrides={"S09": 99.6}).apply(ParameterStore.default(CATALOG))
        assert store.cost_overrides == {"S09 Tiltak innen havbruk (ammoniakk/plug-in)": 100.0}

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            ParametersSpec(exclude=["ZZ9"]).apply(ParameterStore.default(CATALOG))

    def test_parameters_applied_over_token(self):
        token = encode(ParameterStore.default(CATALOG).with_target("75").with_default_unknown_cost(10))
        config = DashboardConfig(name="t", token=token,
                                 parameters=ParametersSpec(default_unknown_cost=20))
        store = config.to_store()
        assert store.selected_target == "75"
        assert store.default_unknown_cost == 20.0

    def test_range_costs(self):
        spec = ParametersSpec(range_costs={">1500": 2499.6, "Varierer": 400})
        store = spec.apply(ParameterStore.default(CATALOG))
        assert store.range_costs == {">1500": 2500.0}
        assert store.default_unknown_cost == 400.0

    def test_range_costs_unknown_label(self):
        with pytest.raises(ValueError):
            ParametersSpec(range_costs={"dyrt": 1}).apply(ParameterStore.default(CATALOG))

    def test_unset_fields_omitted(self):
        assert ParametersSpec(target="70").to_dict() == {"target": "70"}


class TestSweepSpec:
    """Tests for sweep value resolution."""

    def test_explicit_values(self):
        assert SweepSpec("default_unknown_cost", values=[100, 200]).resolve_values() == [100.0, 200.0]

    def test_override_key(self):
        assert SweepSpec("override:T05").override_key == "T05"
        assert SweepSpec("default_unknown_cost").override_key is None

    def test_range_label(self):
        assert SweepSpec("range:>1500").range_label == ">1500"
        assert SweepSpec("override:T05").range_label is None

    def test_round_trip(self):
        spec = SweepSpec("override:J01", start=0, stop=1000, num=5)
        assert SweepSpec.from_dict(spec.to_dict()) == spec


class TestValidateConfig:
    """Tests for config validation."""

    def test_valid(self, config_dict):
        assert validate_config(DashboardConfig.from_dict(config_dict)) == []

    def test_collects_all_errors(self):
        config = DashboardConfig.from_dict({
            "name": " ",
            "gap_mode": "magic",
            "trajectory": {"reference_level": -1},
            "parameters": {
                "default_unknown_cost": -5,
                "target": "90",
                "cost_overrides": {"ZZ1": 10, "T01": "cheap"},
                "exclude": ["nothing"],
                "filter_category": "Luftfart",
                "filter_cost_type": "free",
                "sort_column": "colour",
                "sort_direction": "up",
            },
            "sweep": {"parameter": "discount_rate", "values": []},
        })
        errors = validate_config(config)
        joined = "\n".join(errors)
        for fragment in ("name", "gap_mode", "reference_level", "default_unknown_cost",
                         "target", "'ZZ1'", "cost_overrides['T01']", "exclude",
                         "filter_category", "filter_cost_type", "sort_column",
                         "sort_direction", "sweep parameter", "at least one value"):
            assert fragment in joined, fragment

    def test_sweep_needs_range(self):
        config = DashboardConfig(name="s", sweep=SweepSpec("default_unknown_cost", start=0))
        assert any("start" in e for e in validate_config(config))

    def test_sweep_override_unknown_measure(self):
        config = DashboardConfig(name="s", sweep=SweepSpec("override:ZZ9", values=[1]))
        assert any("ZZ9" in e for e in validate_config(config))

    def test_range_costs_checked(self):
        config = DashboardConfig.from_dict({
            "name": "r",
            "parameters": {"range_costs": {"1500-3000": 10, "<500": -1, "500-1500": "cheap"}},
        })
        errors = "\n".join(validate_config(config))
        assert "Unknown cost range in range_costs: 1500-3000" in errors
        assert "range_costs['<500']" in errors
        assert "range_costs['500-1500']" in errors

    def test_sweep_range(self):
        assert validate_config(DashboardConfig(name="s", sweep=SweepSpec("range:>1500", values=[1]))) == []
        errors = validate_config(DashboardConfig(name="s", sweep=SweepSpec("range:dyrt", values=[1])))
        assert any("dyrt" in e for e in errors)

    def test_unreadable_token_is_not_an_error(self):
        assert validate_config(DashboardConfig(name="t", token="garbage")) == []


class TestLoadSave:
    """Tests for config files."""

    def test_save_and_load(self, tmp_path, config_dict):
        config = DashboardConfig.from_dict(config_dict)
        path = tmp_path / "configs" / "session.json"
        save_config(config, path)
        assert load_config(path) == config

    def test_load_plain_json(self, tmp_path, config_dict):
        path = tmp_path / "session.json"
        path.write_text(json.dumps(config_dict), encoding="utf-8")
        assert load_config(path).name == "high_unknown_cost"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.json")

    @pytest.mark.parametrize("path", sorted((Path(__file__).parent.parent / "configs").glob("*.json")),
                             ids=lambda p: p.name)
    def test_shipped_configs_valid(self, path):
        assert validate_config(load_config(path)) == []
