"""
Sensitivity sweeps over cost assumptions.

Recomputes the selection totals while one cost input varies: the default
cost for measures with unknown cost, the cost of one cost-range tier, or the
override of a single measure.
Potential (and therefore the target gap) does not depend on costs, so a
sweep only moves total cost and average unit cost.
"""

from dataclasses import dataclass, field
from typing import List, Sequence
import logging

import numpy as np

from .catalog import CATALOG, RANGE_LABEL_COSTS, UNKNOWN_RANGE_LABEL, MeasureRecord, find_measures
from .model import COST_SCALE, aggregate, project_rows, selected_rows
from .store import ParameterStore

logger = logging.getLogger(__name__)

OVERRIDE_PREFIX = "override:"
RANGE_PREFIX = "range:"


@dataclass
class SweepResult:
    """Result of a cost sweep."""
    param_name: str
    param_values: List[float]
    total_cost: List[float]        # billion NOK
    avg_unit_cost: List[float]     # NOK/tonne
    total_potential: float         # Mt, constant over the sweep
    affected_titles: List[str] = field(default_factory=list)
    affected_potential: float = 0.0  # Mt priced by the swept parameter

    @property
    def cost_slope(self) -> float:
        """Billion NOK per NOK/tonne of the swept parameter."""
        return self.affected_potential * 1000.0 / COST_SCALE

    def to_dict(self) -> dict:
        return {
            "param_name": self.param_name,
            "param_values": self.param_values,
            "total_cost": self.total_cost,
            "avg_unit_cost": self.avg_unit_cost,
            "total_potential": self.total_potential,
            "affected_titles": self.affected_titles,
            "affected_potential": self.affected_potential,
        }


class CostSweeper:
    """
    Sweep one cost input of a ParameterStore and collect selection totals.

    Example:
        sweeper = CostSweeper(store)
        result = sweeper.sweep_default_unknown_cost(np.linspace(0, 3000, 7))
    """

    def __init__(self, store: ParameterStore, catalog: Sequence[MeasureRecord] = CATALOG):
        self.store = store
        self.catalog = catalog

    def _totals(self, store: ParameterStore):
        rows = selected_rows(project_rows(self.catalog, store), store.selection)
        return aggregate(rows).grand_total

    def _sweep(self, param_name: str, values, make_store, affected: List[str]) -> SweepResult:
        values = np.asarray(values, dtype=float)
        total_cost = np.zeros(len(values))
        avg_unit_cost = np.zeros(len(values))
        total_potential = 0.0

        for i, value in enumerate(values):
            total = self._totals(make_store(float(value)))
            total_cost[i] = total.cost
            avg_unit_cost[i] = total.avg_unit_cost
            total_potential = total.potential

        if len(values) == 0:
            total_potential = self._totals(self.store).potential

        affected_potential = sum(
            m.potential_mt for m in self.catalog
            if m.title in affected and m.title in self.store.selection
        )
        logger.debug("Swept %s over %d values", param_name, len(values))
        return SweepResult(
            param_name=param_name,
            param_values=values.tolist(),
            total_cost=total_cost.tolist(),
            avg_unit_cost=avg_unit_cost.tolist(),
            total_potential=total_potential,
            affected_titles=affected,
            affected_potential=affected_potential,
        )

    def sweep_default_unknown_cost(self, values) -> SweepResult:
        """Vary the cost assumed for measures with unknown cost and no override."""
        affected = []
        for m in self.catalog:
            if m.cost is None and m.title not in self.store.cost_overrides and m.title not in affected:
                affected.append(m.title)
        return self._sweep(
            "default_unknown_cost",
            values,
            self.store.with_default_unknown_cost,
            affected,
        )

    def sweep_range_cost(self, label: str, values) -> SweepResult:
        """
        Vary the unit cost of one cost-range tier.

        Measures with a title override keep their override. The "Varierer"
        tier is the unknown-cost default.

        Raises:
            ValueError: If the label is not a catalog cost range
        """
        if label not in RANGE_LABEL_COSTS:
            raise ValueError(f"Unknown cost range: {label}. Valid: {list(RANGE_LABEL_COSTS)}")
        if label == UNKNOWN_RANGE_LABEL:
            result = self.sweep_default_unknown_cost(values)
            result.param_name = f"{RANGE_PREFIX}{label}"
            return result
        affected = []
        for m in self.catalog:
            if (m.cost_range_label == label and m.title not in self.store.cost_overrides
                    and m.title not in affected):
                affected.append(m.title)
        return self._sweep(
            f"{RANGE_PREFIX}{label}",
            values,
            lambda value: self.store.with_range_cost(label, value),
            affected,
        )

    def sweep_override(self, key: str, values) -> SweepResult:
        """
        Vary the override of one measure, given by title or id.

        An id expands to every title carrying it.

        Raises:
            KeyError: If no measure matches the key
        """
        titles = []
        for m in find_measures(self.catalog, key):
            if m.title not in titles:
                titles.append(m.title)
        if not titles:
            raise KeyError(f"No measure with title or id '{key}'")

        def make_store(value: float) -> ParameterStore:
            store = self.store
            for title in titles:
                store = store.with_cost_override(title, value)
            return store

        return self._sweep(f"{OVERRIDE_PREFIX}{key}", values, make_store, titles)

    def sweep_parameter(self, param_name: str, values) -> SweepResult:
        """
        Dispatch on a sweep parameter name.

        param_name is "default_unknown_cost", "range:<cost range label>" or
        "override:<title or id>".
        """
        if param_name == "default_unknown_cost":
            return self.sweep_default_unknown_cost(values)
        if param_name.startswith(OVERRIDE_PREFIX):
            return self.sweep_override(param_name[len(OVERRIDE_PREFIX):], values)
        if param_name.startswith(RANGE_PREFIX):
            return self.sweep_range_cost(param_name[len(RANGE_PREFIX):], values)
        raise ValueError(f"Unknown sweep parameter: {param_name}")


def sweep_values(start: float, stop: float, num: int = 7) -> List[float]:
    """Evenly spaced sweep values, rounded to whole NOK."""
    return np.round(np.linspace(start, stop, num)).tolist()
