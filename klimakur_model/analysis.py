"""
Analysis helpers built on top of the dashboard view.

Example: Abatement cost curve for the current selection
    from klimakur_model.analysis import abatement_cost_curve
    from klimakur_model.model import compute_view

    view = compute_view(store)
    curve = abatement_cost_curve(view.selected_rows)
    print(curve.cumulative_potential[-1])  # equals view.aggregation.grand_total.potential

Example: How the same selection fares against every target
    from klimakur_model.analysis import compare_targets

    for key, gap in compare_targets(view.aggregation.grand_total).items():
        print(key, gap.coverage_percent, gap.reaches_target)
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .catalog import REFERENCE_TRAJECTORY, TARGET_SCENARIOS, ReferenceTrajectory, TargetScenario
from .model import ComputedRow, GapMode, GapResult, GrandTotal, analyze_gap


@dataclass
class CostCurvePoint:
    """One measure on the abatement cost curve."""
    title: str
    category: str
    unit_cost: float        # NOK/tonne
    potential: float        # Mt
    cumulative_potential: float
    cumulative_cost: float  # billion NOK
    is_assumed: bool


@dataclass
class CostCurve:
    """Selected measures ordered from cheapest to most expensive unit cost."""
    points: List[CostCurvePoint]

    @property
    def titles(self) -> List[str]:
        return [p.title for p in self.points]

    @property
    def unit_costs(self) -> List[float]:
        return [p.unit_cost for p in self.points]

    @property
    def potentials(self) -> List[float]:
        return [p.potential for p in self.points]

    @property
    def cumulative_potential(self) -> List[float]:
        return [p.cumulative_potential for p in self.points]

    @property
    def cumulative_cost(self) -> List[float]:
        return [p.cumulative_cost for p in self.points]

    @property
    def total_potential(self) -> float:
        return self.points[-1].cumulative_potential if self.points else 0.0

    def marginal_cost_for(self, required: float) -> Optional[float]:
        """
        Unit cost of the last measure needed to reach `required` Mt when
        measures are taken cheapest first.

        Returns None if the whole curve falls short; 0.0 if nothing is required.
        """
        if required <= 0:
            return 0.0
        for p in self.points:
            if p.cumulative_potential >= required:
                return p.unit_cost
        return None

    def to_dict(self) -> dict:
        return {
            "points": [
                {
                    "title": p.title,
                    "category": p.category,
                    "unit_cost": p.unit_cost,
                    "potential": p.potential,
                    "cumulative_potential": p.cumulative_potential,
                    "cumulative_cost": p.cumulative_cost,
                    "is_assumed": p.is_assumed,
                }
                for p in self.points
            ],
            "total_potential": self.total_potential,
        }


def abatement_cost_curve(rows: Sequence[ComputedRow]) -> CostCurve:
    """
    Build the abatement cost curve for a set of rows.

    Rows are ordered by unit cost (ties keep input order) and potential is
    accumulated in Mt.
    """
    if not rows:
        return CostCurve(points=[])

    unit_costs = np.array([r.unit_cost for r in rows], dtype=float)
    order = np.argsort(unit_costs, kind="stable")
    potentials = np.array([r.potential_mt for r in rows], dtype=float)[order]
    costs = np.array([r.total_cost for r in rows], dtype=float)[order]
    cum_potential = np.cumsum(potentials)
    cum_cost = np.cumsum(costs)

    points = []
    for pos, idx in enumerate(order):
        row = rows[int(idx)]
        points.append(CostCurvePoint(
            title=row.title,
            category=row.category,
            unit_cost=row.unit_cost,
            potential=row.potential_mt,
            cumulative_potential=float(cum_potential[pos]),
            cumulative_cost=float(cum_cost[pos]),
            is_assumed=row.is_assumed,
        ))
    return CostCurve(points=points)


def compare_targets(
    total: GrandTotal,
    trajectory: ReferenceTrajectory = REFERENCE_TRAJECTORY,
    mode: GapMode = GapMode.BASELINE_DECOMPOSITION,
    scenarios: Optional[Dict[str, TargetScenario]] = None,
) -> Dict[str, GapResult]:
    """Gap result for the same grand total against every target scenario."""
    if scenarios is None:
        scenarios = TARGET_SCENARIOS
    return {key: analyze_gap(total, s, trajectory, mode) for key, s in scenarios.items()}
