"""
User-adjustable dashboard parameters.

ParameterStore is an immutable value: every user action returns a new store
(via the with_* methods), so any revision can be kept as a snapshot, compared
or serialized. Input validation happens here, when a value is set, not when
the derived views read it.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Sequence
import math

from .catalog import (
    CATALOG,
    CATEGORIES,
    DEFAULT_TARGET,
    RANGE_LABEL_COSTS,
    TARGET_SCENARIOS,
    UNKNOWN_RANGE_LABEL,
    MeasureRecord,
    catalog_titles,
)


DEFAULT_UNKNOWN_COST = 1500.0

ALL_CATEGORIES = "All"
COST_TYPES = ("all", "known", "assumed")
SORT_COLUMNS = ("title", "category", "potential", "cost", "unit_cost")
SORT_DIRECTIONS = ("asc", "desc")


def coerce_cost(value) -> float:
    """
    Coerce a user-entered unit cost (NOK/tonne).

    Accepts numbers and numeric strings; negative values clamp to 0 and the
    result is rounded to whole NOK (half rounds up).

    Raises:
        ValueError: If the value is not numeric or not finite
    """
    if isinstance(value, bool):
        raise ValueError(f"Unit cost must be numeric, got {value!r}")
    if isinstance(value, str):
        value = value.strip().replace(" ", "").replace(",", ".")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Unit cost must be numeric, got {value!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"Unit cost must be finite, got {value!r}")
    return float(math.floor(max(0.0, number) + 0.5))


class SelectionState(Enum):
    """Tri-state of the select-all control for the visible rows."""
    ALL = "all"
    NONE = "none"
    SOME = "some"


def selection_state(visible_titles: Iterable[str], selection: FrozenSet[str]) -> SelectionState:
    """
    Classify how much of the visible set is selected.

    An empty visible set counts as NONE.
    """
    titles = list(visible_titles)
    selected = sum(1 for t in titles if t in selection)
    if titles and selected == len(titles):
        return SelectionState.ALL
    if selected == 0:
        return SelectionState.NONE
    return SelectionState.SOME


@dataclass(frozen=True)
class ParameterStore:
    """
    Mutable-by-replacement inputs of the dashboard.

    cost_overrides maps measure title -> NOK/tonne and range_costs maps a
    catalog cost-range label to the NOK/tonne used for every measure in that
    tier; neither is mutated in place. selection holds the titles included in totals; use
    ParameterStore.default() for the session starting point (all selected).
    Filter and sort fields only affect which rows are displayed.
    """
    cost_overrides: Dict[str, float] = field(default_factory=dict)
    range_costs: Dict[str, float] = field(default_factory=dict)
    default_unknown_cost: float = DEFAULT_UNKNOWN_COST
    selected_target: str = DEFAULT_TARGET
    selection: FrozenSet[str] = frozenset()
    filter_category: str = ALL_CATEGORIES
    filter_cost_type: str = "all"
    search_text: str = ""
    sort_column: Optional[str] = None
    sort_direction: str = "asc"

    @classmethod
    def default(cls, catalog: Sequence[MeasureRecord] = CATALOG) -> "ParameterStore":
        """Fresh store with every catalog measure selected."""
        return cls(selection=frozenset(catalog_titles(catalog)))

    # --- Costs ---

    def with_cost_override(self, title: str, value) -> "ParameterStore":
        """Set the unit cost override for a measure title."""
        overrides = dict(self.cost_overrides)
        overrides[title] = coerce_cost(value)
        return replace(self, cost_overrides=overrides)

    def without_cost_override(self, title: str) -> "ParameterStore":
        if title not in self.cost_overrides:
            return self
        overrides = {k: v for k, v in self.cost_overrides.items() if k != title}
        return replace(self, cost_overrides=overrides)

    def with_default_unknown_cost(self, value) -> "ParameterStore":
        return replace(self, default_unknown_cost=coerce_cost(value))

    def with_range_cost(self, label: str, value) -> "ParameterStore":
        """
        Set the unit cost used for every measure in a cost-range tier.

        The unknown-cost label ("Varierer") sets default_unknown_cost. Setting
        a tier back to its catalog value removes the entry.

        Raises:
            ValueError: If the label is not a catalog cost range or the value
                is not a usable cost
        """
        if label not in RANGE_LABEL_COSTS:
            raise ValueError(f"Unknown cost range: {label}. Valid: {list(RANGE_LABEL_COSTS)}")
        if label == UNKNOWN_RANGE_LABEL:
            return self.with_default_unknown_cost(value)
        cost = coerce_cost(value)
        costs = {k: v for k, v in self.range_costs.items() if k != label}
        if cost != RANGE_LABEL_COSTS[label]:
            costs[label] = cost
        return replace(self, range_costs=costs)

    def without_range_cost(self, label: str) -> "ParameterStore":
        if label == UNKNOWN_RANGE_LABEL:
            return replace(self, default_unknown_cost=DEFAULT_UNKNOWN_COST)
        if label not in self.range_costs:
            return self
        return replace(self, range_costs={k: v for k, v in self.range_costs.items() if k != label})

    def range_cost(self, label: str) -> Optional[float]:
        """Effective unit cost of a tier; None for labels outside the catalog."""
        if label == UNKNOWN_RANGE_LABEL:
            return self.default_unknown_cost
        if label in self.range_costs:
            return self.range_costs[label]
        return RANGE_LABEL_COSTS.get(label)

    def reset_costs(self) -> "ParameterStore":
        """Drop all overrides and restore the default tier and assumed costs."""
        return replace(self, cost_overrides={}, range_costs={},
                       default_unknown_cost=DEFAULT_UNKNOWN_COST)

    # --- Target ---

    def with_target(self, key: str) -> "ParameterStore":
        if key not in TARGET_SCENARIOS:
            raise ValueError(f"Unknown target scenario: {key}. "
                             f"Available: {list(TARGET_SCENARIOS.keys())}")
        return replace(self, selected_target=key)

    # --- Selection ---

    def toggled(self, title: str) -> "ParameterStore":
        """Include or exclude a single measure title."""
        if title in self.selection:
            return replace(self, selection=self.selection - {title})
        return replace(self, selection=self.selection | {title})

    def with_selection(self, titles: Iterable[str]) -> "ParameterStore":
        return replace(self, selection=frozenset(titles))

    def select_titles(self, titles: Iterable[str]) -> "ParameterStore":
        return replace(self, selection=self.selection | frozenset(titles))

    def deselect_titles(self, titles: Iterable[str]) -> "ParameterStore":
        return replace(self, selection=self.selection - frozenset(titles))

    # --- View filters and sort ---

    def with_filter_category(self, category: str) -> "ParameterStore":
        if category != ALL_CATEGORIES and category not in CATEGORIES:
            raise ValueError(f"Unknown category: {category}")
        return replace(self, filter_category=category)

    def with_filter_cost_type(self, cost_type: str) -> "ParameterStore":
        if cost_type not in COST_TYPES:
            raise ValueError(f"Unknown cost type filter: {cost_type}. Valid: {COST_TYPES}")
        return replace(self, filter_cost_type=cost_type)

    def with_search_text(self, text: str) -> "ParameterStore":
        return replace(self, search_text=text or "")

    def with_sort(self, column: Optional[str], direction: Optional[str] = None) -> "ParameterStore":
        """
        Set the sort column.

        Without an explicit direction, choosing the current column again flips
        the direction and a new column starts ascending. column=None restores
        catalog order.
        """
        if column is None:
            return replace(self, sort_column=None, sort_direction="asc")
        if column not in SORT_COLUMNS:
            raise ValueError(f"Unknown sort column: {column}. Valid: {SORT_COLUMNS}")
        if direction is None:
            if column == self.sort_column:
                direction = "desc" if self.sort_direction == "asc" else "asc"
            else:
                direction = "asc"
        elif direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {direction}. Valid: {SORT_DIRECTIONS}")
        return replace(self, sort_column=column, sort_direction=direction)

    def reset_all(self, catalog: Sequence[MeasureRecord] = CATALOG) -> "ParameterStore":
        """Return the session default store."""
        return ParameterStore.default(catalog)
