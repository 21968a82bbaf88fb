"""
Session configuration loading and serialization.

A session config describes a starting dashboard state (cost assumptions,
excluded measures, target, view settings), how the target gap is counted,
optional overrides of the reference trajectory and an optional sensitivity
sweep. Configs are JSON files; comments are allowed when json5 is installed.
"""

from dataclasses import dataclass, field, asdict, replace
from typing import Optional, List, Any, Dict
import json
import logging
from pathlib import Path

try:
    import json5
    _HAS_JSON5 = True
except ImportError:
    _HAS_JSON5 = False

from .catalog import (
    CATALOG,
    CATEGORIES,
    RANGE_LABEL_COSTS,
    REFERENCE_TRAJECTORY,
    TARGET_SCENARIOS,
    ReferenceTrajectory,
    find_measures,
)
from .codec import decode, restore
from .model import GapMode
from .store import (
    ALL_CATEGORIES,
    COST_TYPES,
    SORT_COLUMNS,
    SORT_DIRECTIONS,
    ParameterStore,
)
from .sweep import OVERRIDE_PREFIX, RANGE_PREFIX, sweep_values

logger = logging.getLogger(__name__)


# --- Config Dataclasses ---

@dataclass
class TrajectorySpec:
    """Optional overrides of the reference trajectory (Mt CO2e)."""
    baseline_1990: Optional[float] = None
    reference_level: Optional[float] = None
    reference_year: Optional[int] = None
    current_level: Optional[float] = None
    current_year: Optional[int] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> "TrajectorySpec":
        return cls(
            baseline_1990=data.get("baseline_1990"),
            reference_level=data.get("reference_level"),
            reference_year=data.get("reference_year"),
            current_level=data.get("current_level"),
            current_year=data.get("current_year"),
        )

    def to_trajectory(self, base: ReferenceTrajectory = REFERENCE_TRAJECTORY) -> ReferenceTrajectory:
        """Apply the overrides to a base trajectory."""
        return replace(base, **self.to_dict())


@dataclass
class ParametersSpec:
    """
    Starting dashboard parameters.

    Unset (None) fields keep the value from the share token, or the default.
    cost_overrides and exclude accept either exact titles or measure ids
    (an id expands to every title carrying it). range_costs reprices whole
    cost-range tiers by label ("<500", "500-1500", ">1500", "Varierer").
    """
    default_unknown_cost: Optional[float] = None
    target: Optional[str] = None
    cost_overrides: Dict[str, float] = field(default_factory=dict)
    range_costs: Dict[str, float] = field(default_factory=dict)
    exclude: List[str] = field(default_factory=list)
    filter_category: Optional[str] = None
    filter_cost_type: Optional[str] = None
    search_text: Optional[str] = None
    sort_column: Optional[str] = None
    sort_direction: Optional[str] = None

    def to_dict(self) -> dict:
        d = {}
        for key, value in asdict(self).items():
            if value is None or value == {} or value == []:
                continue
            d[key] = value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "ParametersSpec":
        return cls(
            default_unknown_cost=data.get("default_unknown_cost"),
            target=data.get("target"),
            cost_overrides=dict(data.get("cost_overrides", {})),
            range_costs=dict(data.get("range_costs", {})),
            exclude=list(data.get("exclude", [])),
            filter_category=data.get("filter_category"),
            filter_cost_type=data.get("filter_cost_type"),
            search_text=data.get("search_text"),
            sort_column=data.get("sort_column"),
            sort_direction=data.get("sort_direction"),
        )

    def apply(self, store: ParameterStore, catalog=CATALOG) -> ParameterStore:
        """
        Apply the set fields to a store through its validating setters.

        Raises:
            ValueError: If a value is rejected by the store
            KeyError: If a title or id matches no catalog measure
        """
        if self.default_unknown_cost is not None:
            store = store.with_default_unknown_cost(self.default_unknown_cost)
        if self.target is not None:
            store = store.with_target(self.target)
        for label, cost in self.range_costs.items():
            store = store.with_range_cost(label, cost)
        for key, cost in self.cost_overrides.items():
            for title in _resolve_titles(key, catalog):
                store = store.with_cost_override(title, cost)
        excluded = [t for key in self.exclude for t in _resolve_titles(key, catalog)]
        if excluded:
            store = store.deselect_titles(excluded)
        if self.filter_category is not None:
            store = store.with_filter_category(self.filter_category)
        if self.filter_cost_type is not None:
            store = store.with_filter_cost_type(self.filter_cost_type)
        if self.search_text is not None:
            store = store.with_search_text(self.search_text)
        if self.sort_column is not None:
            store = store.with_sort(self.sort_column, self.sort_direction or "asc")
        return store


def _resolve_titles(key: str, catalog) -> List[str]:
    measures = find_measures(catalog, key)
    if not measures:
        raise KeyError(f"No measure with title or id '{key}'")
    titles = []
    for m in measures:
        if m.title not in titles:
            titles.append(m.title)
    return titles


@dataclass
class SweepSpec:
    """
    Sensitivity sweep over one cost assumption.

    parameter is "default_unknown_cost", "range:<cost range label>" or
    "override:<title or id>".
    Values are either listed explicitly or generated with start/stop/num.
    """
    parameter: str
    values: Optional[List[float]] = None
    start: Optional[float] = None
    stop: Optional[float] = None
    num: int = 7

    def to_dict(self) -> dict:
        d: Dict[str, Any] = {"parameter": self.parameter}
        if self.values is not None:
            d["values"] = self.values
        else:
            d["start"] = self.start
            d["stop"] = self.stop
            d["num"] = self.num
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "SweepSpec":
        return cls(
            parameter=data["parameter"],
            values=data.get("values"),
            start=data.get("start"),
            stop=data.get("stop"),
            num=data.get("num", 7),
        )

    def resolve_values(self) -> List[float]:
        """Explicit values, or num evenly spaced whole-NOK values from start to stop."""
        if self.values is not None:
            return [float(v) for v in self.values]
        return sweep_values(self.start, self.stop, self.num)

    @property
    def override_key(self) -> Optional[str]:
        """Title or id targeted by an override sweep."""
        if self.parameter.startswith(OVERRIDE_PREFIX):
            return self.parameter[len(OVERRIDE_PREFIX):]
        return None

    @property
    def range_label(self) -> Optional[str]:
        """Cost-range label targeted by a tier sweep."""
        if self.parameter.startswith(RANGE_PREFIX):
            return self.parameter[len(RANGE_PREFIX):]
        return None


@dataclass
class DashboardConfig:
    """
    Complete session configuration.

    This is the top-level config that gets serialized to/from JSON.
    """
    name: str
    description: str = ""
    gap_mode: str = GapMode.BASELINE_DECOMPOSITION.value
    trajectory: TrajectorySpec = field(default_factory=TrajectorySpec)
    parameters: ParametersSpec = field(default_factory=ParametersSpec)
    token: Optional[str] = None
    sweep: Optional[SweepSpec] = None
    output_dir: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert config to JSON-serializable dict."""
        return {
            "name": self.name,
            "description": self.description,
            "gap_mode": self.gap_mode,
            "trajectory": self.trajectory.to_dict(),
            "parameters": self.parameters.to_dict(),
            "token": self.token,
            "sweep": self.sweep.to_dict() if self.sweep is not None else None,
            "output_dir": self.output_dir,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DashboardConfig":
        """Create config from dict (e.g., from JSON)."""
        sweep = None
        if data.get("sweep"):
            sweep = SweepSpec.from_dict(data["sweep"])

        return cls(
            name=data.get("name", "unnamed"),
            description=data.get("description", ""),
            gap_mode=data.get("gap_mode", GapMode.BASELINE_DECOMPOSITION.value),
            trajectory=TrajectorySpec.from_dict(data.get("trajectory") or {}),
            parameters=ParametersSpec.from_dict(data.get("parameters") or {}),
            token=data.get("token"),
            sweep=sweep,
            output_dir=data.get("output_dir"),
        )

    def is_sweep(self) -> bool:
        return self.sweep is not None

    @property
    def mode(self) -> GapMode:
        return GapMode(self.gap_mode)

    def to_store(self, catalog=CATALOG) -> ParameterStore:
        """Starting store: token (if any), then the explicit parameters."""
        store = restore(self.token, catalog) if self.token else ParameterStore.default(catalog)
        return self.parameters.apply(store, catalog)

    def to_trajectory(self) -> ReferenceTrajectory:
        return self.trajectory.to_trajectory()


def load_config(path: str | Path) -> DashboardConfig:
    """
    Load a session configuration from a JSON file.

    Supports JSON with comments (JSONC) if json5 is installed.

    Raises:
        FileNotFoundError: If config file doesn't exist
        json.JSONDecodeError: If JSON is invalid
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        if _HAS_JSON5:
            data = json5.load(f)
        else:
            data = json.load(f)
    return DashboardConfig.from_dict(data)


def save_config(config: DashboardConfig, path: str | Path) -> None:
    """Save a session configuration to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)


def validate_config(config: DashboardConfig, catalog=CATALOG) -> List[str]:
    """
    Validate a configuration and return list of error messages.

    Returns empty list if config is valid.
    """
    errors = []

    if not config.name or not config.name.strip():
        errors.append("Config must have a non-empty 'name'")

    valid_modes = [m.value for m in GapMode]
    if config.gap_mode not in valid_modes:
        errors.append(f"Unknown gap_mode: {config.gap_mode}. Valid: {valid_modes}")

    # Trajectory levels
    for key, value in config.trajectory.to_dict().items():
        if key.endswith("_year"):
            continue
        if not isinstance(value, (int, float)) or value < 0:
            errors.append(f"trajectory.{key} must be a non-negative number, got {value!r}")

    params = config.parameters
    if params.default_unknown_cost is not None:
        if not isinstance(params.default_unknown_cost, (int, float)) or params.default_unknown_cost < 0:
            errors.append(f"default_unknown_cost must be a non-negative number, "
                          f"got {params.default_unknown_cost!r}")

    if params.target is not None and params.target not in TARGET_SCENARIOS:
        errors.append(f"Unknown target: {params.target}. Valid: {list(TARGET_SCENARIOS.keys())}")

    for key, cost in params.cost_overrides.items():
        if not find_measures(catalog, key):
            errors.append(f"cost_overrides: no measure with title or id '{key}'")
        if not isinstance(cost, (int, float)) or cost < 0:
            errors.append(f"cost_overrides['{key}'] must be a non-negative number, got {cost!r}")

    for label, cost in params.range_costs.items():
        if label not in RANGE_LABEL_COSTS:
            errors.append(f"Unknown cost range in range_costs: {label}. "
                          f"Valid: {list(RANGE_LABEL_COSTS)}")
        if not isinstance(cost, (int, float)) or isinstance(cost, bool) or cost < 0:
            errors.append(f"range_costs['{label}'] must be a non-negative number, got {cost!r}")

    for key in params.exclude:
        if not find_measures(catalog, key):
            errors.append(f"exclude: no measure with title or id '{key}'")

    if params.filter_category is not None and params.filter_category != ALL_CATEGORIES \
            and params.filter_category not in CATEGORIES:
        errors.append(f"Unknown filter_category: {params.filter_category}")
    if params.filter_cost_type is not None and params.filter_cost_type not in COST_TYPES:
        errors.append(f"Unknown filter_cost_type: {params.filter_cost_type}. Valid: {COST_TYPES}")
    if params.sort_column is not None and params.sort_column not in SORT_COLUMNS:
        errors.append(f"Unknown sort_column: {params.sort_column}. Valid: {SORT_COLUMNS}")
    if params.sort_direction is not None and params.sort_direction not in SORT_DIRECTIONS:
        errors.append(f"Unknown sort_direction: {params.sort_direction}. Valid: {SORT_DIRECTIONS}")

    if config.token and not decode(config.token, catalog):
        # Unreadable tokens fall back to defaults; not an error
        logger.warning("Config '%s' has an unreadable token; using defaults", config.name)

    if config.sweep:
        sweep = config.sweep
        override_key = sweep.override_key
        range_label = sweep.range_label
        if sweep.parameter != "default_unknown_cost" and override_key is None and range_label is None:
            errors.append(f"Invalid sweep parameter: {sweep.parameter}. "
                          f"Valid: default_unknown_cost, {RANGE_PREFIX}<cost range>, "
                          f"{OVERRIDE_PREFIX}<title or id>")
        if range_label is not None and range_label not in RANGE_LABEL_COSTS:
            errors.append(f"Sweep range: unknown cost range '{range_label}'. "
                          f"Valid: {list(RANGE_LABEL_COSTS)}")
        if override_key is not None and not find_measures(catalog, override_key):
            errors.append(f"Sweep override: no measure with title or id '{override_key}'")
        if sweep.values is not None:
            if not sweep.values:
                errors.append("Sweep must have at least one value")
        elif sweep.start is None or sweep.stop is None:
            errors.append("Sweep needs either 'values' or 'start' and 'stop'")
        elif sweep.num < 1:
            errors.append(f"Sweep num must be positive, got {sweep.num}")

    return errors
