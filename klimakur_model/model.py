"""
Derived-state computation for the Klimakur measure dashboard.

Every function here is a pure function of the static catalog and a
ParameterStore: resolved unit costs, one computed row per measure, the
visible (filtered and sorted) measure list, aggregates over the selected
rows, the gap to a national target and overlap warnings. Nothing is cached;
callers recompute the whole view whenever the store changes.

Units:
    potential   kt CO2e in the catalog, Mt CO2e in rows/aggregates
    unit cost   NOK per tonne CO2e
    total cost  billion NOK (potential_kt * unit_cost / 1e6)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple
import unicodedata

from .catalog import (
    CATALOG,
    COST_BUCKETS,
    CONFLICT_GROUPS,
    KT_PER_MT,
    REFERENCE_TRAJECTORY,
    TARGET_SCENARIOS,
    ConflictGroup,
    CostBucket,
    MeasureRecord,
    ReferenceTrajectory,
    TargetScenario,
    bucket_for,
    extract_measure_id,
)
from .store import (
    ALL_CATEGORIES,
    ParameterStore,
    SelectionState,
    selection_state,
)


# kt * NOK/t -> billion NOK: 1 kt = 1e3 t, 1 bn = 1e9
COST_SCALE = 1e6


# --- Cost resolution ---

def resolve_unit_cost(measure: MeasureRecord, store: ParameterStore) -> float:
    """
    Effective unit cost (NOK/tonne) for a measure.

    Precedence: user override > default for unknown cost > repriced cost
    range > catalog cost. Overrides are returned as stored.
    """
    override = store.cost_overrides.get(measure.title)
    if override is not None:
        return override
    if measure.cost is None:
        return store.default_unknown_cost
    return store.range_costs.get(measure.cost_range_label, measure.cost)


def is_assumed_cost(measure: MeasureRecord, store: ParameterStore) -> bool:
    """True if the measure's cost is unknown and the user has not overridden it."""
    return measure.cost is None and measure.title not in store.cost_overrides


# --- Row projection ---

@dataclass(frozen=True)
class ComputedRow:
    """One measure with its resolved cost figures."""
    measure: MeasureRecord
    potential_kt: float
    potential_mt: float
    unit_cost: float
    total_cost: float  # billion NOK
    is_assumed: bool
    is_overridden: bool
    cost_bucket: str

    @property
    def title(self) -> str:
        return self.measure.title

    @property
    def category(self) -> str:
        return self.measure.category

    @property
    def measure_id(self) -> str:
        return self.measure.id

    def to_dict(self) -> dict:
        return {
            "id": self.measure.id,
            "title": self.measure.title,
            "category": self.measure.category,
            "cost_range_label": self.measure.cost_range_label,
            "potential_kt": self.potential_kt,
            "potential_mt": self.potential_mt,
            "unit_cost": self.unit_cost,
            "total_cost": self.total_cost,
            "is_assumed": self.is_assumed,
            "is_overridden": self.is_overridden,
            "cost_bucket": self.cost_bucket,
        }


def project_row(
    measure: MeasureRecord,
    store: ParameterStore,
    buckets: Sequence[CostBucket] = COST_BUCKETS,
) -> ComputedRow:
    """Compute the row for a single measure."""
    unit_cost = resolve_unit_cost(measure, store)
    assumed = is_assumed_cost(measure, store)
    return ComputedRow(
        measure=measure,
        potential_kt=measure.potential,
        potential_mt=measure.potential / KT_PER_MT,
        unit_cost=unit_cost,
        total_cost=measure.potential * unit_cost / COST_SCALE,
        is_assumed=assumed,
        is_overridden=measure.title in store.cost_overrides,
        cost_bucket=bucket_for(unit_cost, assumed, buckets),
    )


def project_rows(
    catalog: Sequence[MeasureRecord],
    store: ParameterStore,
    buckets: Sequence[CostBucket] = COST_BUCKETS,
) -> List[ComputedRow]:
    """One row per catalog measure, regardless of selection and filters."""
    return [project_row(m, store, buckets) for m in catalog]


def selected_rows(rows: Iterable[ComputedRow], selection: FrozenSet[str]) -> List[ComputedRow]:
    """Rows whose title is in the selection, in input order."""
    return [r for r in rows if r.title in selection]


# --- Filter / sort ---

# Norwegian alphabet ends with æ, ø, å; map them past 'z'
_NB_TAIL = {"æ": "{", "ø": "|", "å": "}"}


def nb_sort_key(text: str) -> str:
    """Case-insensitive sort key following Norwegian alphabet order."""
    out = []
    for ch in text.casefold():
        if ch in _NB_TAIL:
            out.append(_NB_TAIL[ch])
            continue
        decomposed = unicodedata.normalize("NFKD", ch)
        out.append("".join(c for c in decomposed if not unicodedata.combining(c)))
    return "".join(out)


def _matches(measure: MeasureRecord, store: ParameterStore) -> bool:
    if store.filter_category != ALL_CATEGORIES and measure.category != store.filter_category:
        return False
    search = store.search_text.strip()
    if search and search.casefold() not in measure.title.casefold():
        return False
    # Cost type looks at the catalog cost, not the resolved one
    if store.filter_cost_type == "known" and measure.cost is None:
        return False
    if store.filter_cost_type == "assumed" and measure.cost is not None:
        return False
    return True


def _sort_key(column: str, store: ParameterStore):
    if column == "title":
        return lambda m: nb_sort_key(m.title)
    if column == "category":
        return lambda m: nb_sort_key(m.category)
    if column == "potential":
        return lambda m: m.potential
    if column == "cost":
        return lambda m: m.potential * resolve_unit_cost(m, store) / COST_SCALE
    if column == "unit_cost":
        return lambda m: resolve_unit_cost(m, store)
    raise ValueError(f"Unknown sort column: {column}")


def visible_measures(catalog: Sequence[MeasureRecord], store: ParameterStore) -> List[MeasureRecord]:
    """
    Measures to display, filtered and ordered by the store's view settings.

    Never consults the selection. Ties keep catalog order; no sort column
    means catalog order.
    """
    visible = [m for m in catalog if _matches(m, store)]
    if store.sort_column:
        # list.sort is stable, also with reverse=True
        visible.sort(key=_sort_key(store.sort_column, store),
                     reverse=(store.sort_direction == "desc"))
    return visible


def visible_selection_state(catalog: Sequence[MeasureRecord], store: ParameterStore) -> SelectionState:
    """Tri-state of the select-all control for the current view."""
    return selection_state((m.title for m in visible_measures(catalog, store)), store.selection)


def select_all_visible(catalog: Sequence[MeasureRecord], store: ParameterStore) -> ParameterStore:
    return store.select_titles(m.title for m in visible_measures(catalog, store))


def deselect_all_visible(catalog: Sequence[MeasureRecord], store: ParameterStore) -> ParameterStore:
    return store.deselect_titles(m.title for m in visible_measures(catalog, store))


# --- Aggregation ---

@dataclass
class AggregateBucket:
    """Totals for one group of selected rows."""
    key: str
    total_potential: float = 0.0  # Mt
    total_cost: float = 0.0       # billion NOK
    count: int = 0

    def add(self, row: ComputedRow) -> None:
        self.total_potential += row.potential_mt
        self.total_cost += row.total_cost
        self.count += 1


@dataclass(frozen=True)
class GrandTotal:
    """Totals over all selected rows."""
    potential: float      # Mt
    cost: float           # billion NOK
    avg_unit_cost: float  # NOK/tonne, potential-weighted


@dataclass
class Aggregation:
    by_category: List[AggregateBucket]
    by_cost_bucket: List[AggregateBucket]
    grand_total: GrandTotal

    def to_dict(self) -> dict:
        def _bucket(b: AggregateBucket) -> dict:
            return {"key": b.key, "total_potential": b.total_potential,
                    "total_cost": b.total_cost, "count": b.count}
        return {
            "by_category": [_bucket(b) for b in self.by_category],
            "by_cost_bucket": [_bucket(b) for b in self.by_cost_bucket],
            "grand_total": {
                "potential": self.grand_total.potential,
                "cost": self.grand_total.cost,
                "avg_unit_cost": self.grand_total.avg_unit_cost,
            },
        }


def grand_total(rows: Sequence[ComputedRow]) -> GrandTotal:
    """
    Sum potential and cost over rows.

    The average unit cost is weighted by potential:
    avg = sum(cost) * 1e6 / sum(potential_kt).
    """
    potential_kt = sum(r.potential_kt for r in rows)
    potential_mt = sum(r.potential_mt for r in rows)
    cost = sum(r.total_cost for r in rows)
    if cost > 0 and potential_kt > 0:
        avg = cost * COST_SCALE / potential_kt
    else:
        avg = 0.0
    return GrandTotal(potential=potential_mt, cost=cost, avg_unit_cost=avg)


def aggregate(
    rows: Sequence[ComputedRow],
    buckets: Sequence[CostBucket] = COST_BUCKETS,
) -> Aggregation:
    """
    Group the selected rows by category and by cost bucket.

    Categories are sorted alphabetically; every cost bucket appears in its
    fixed order, empty or not.
    """
    by_category: Dict[str, AggregateBucket] = {}
    by_bucket: Dict[str, AggregateBucket] = {b.key: AggregateBucket(b.key) for b in buckets}

    for row in rows:
        if row.category not in by_category:
            by_category[row.category] = AggregateBucket(row.category)
        by_category[row.category].add(row)
        by_bucket[row.cost_bucket].add(row)

    return Aggregation(
        by_category=sorted(by_category.values(), key=lambda b: nb_sort_key(b.key)),
        by_cost_bucket=[by_bucket[b.key] for b in buckets],
        grand_total=grand_total(rows),
    )


# --- Target gap ---

class GapMode(Enum):
    """How selected potential is counted against a target."""
    SIMPLE = "simple"              # cut from today's level
    BASELINE_DECOMPOSITION = "baseline"  # extra cut on top of the reference trajectory


def _clamp_pct(value: float) -> float:
    return max(0.0, min(100.0, value))


@dataclass(frozen=True)
class GapResult:
    """Target coverage for the current selection (all levels in Mt)."""
    mode: GapMode
    target_key: str
    target_level: float
    selected_potential: float
    required_reduction: float
    coverage_percent: float
    coverage_percent_clamped: float
    gap: float
    resulting_level: float
    reaches_target: bool
    # Baseline-decomposition only
    reference_contribution: Optional[float] = None
    reference_coverage_percent_clamped: Optional[float] = None
    total_cut_from_baseline: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "target_key": self.target_key,
            "target_level": self.target_level,
            "selected_potential": self.selected_potential,
            "required_reduction": self.required_reduction,
            "coverage_percent": self.coverage_percent,
            "coverage_percent_clamped": self.coverage_percent_clamped,
            "gap": self.gap,
            "resulting_level": self.resulting_level,
            "reaches_target": self.reaches_target,
            "reference_contribution": self.reference_contribution,
            "reference_coverage_percent_clamped": self.reference_coverage_percent_clamped,
            "total_cut_from_baseline": self.total_cut_from_baseline,
        }


def analyze_gap(
    total: GrandTotal,
    scenario: TargetScenario,
    trajectory: ReferenceTrajectory = REFERENCE_TRAJECTORY,
    mode: GapMode = GapMode.BASELINE_DECOMPOSITION,
) -> GapResult:
    """
    Compare the selected potential with a target scenario.

    SIMPLE counts the selection as a cut from the current level.
    BASELINE_DECOMPOSITION treats the reference trajectory as an existing cut
    from the 1990 baseline and the selection as additional cuts on top of it.
    Coverage is reported raw and clamped to [0, 100] for progress bars.
    """
    selected = total.potential
    target_level = trajectory.baseline_1990 * (1 - scenario.reduction_fraction)

    if mode == GapMode.SIMPLE:
        required = trajectory.current_level - target_level
        coverage = selected / required * 100 if required > 0 else 100.0
        resulting = trajectory.current_level - selected
        return GapResult(
            mode=mode,
            target_key=scenario.key,
            target_level=target_level,
            selected_potential=selected,
            required_reduction=required,
            coverage_percent=coverage,
            coverage_percent_clamped=_clamp_pct(coverage),
            gap=max(0.0, required - selected),
            resulting_level=resulting,
            reaches_target=resulting <= target_level,
        )

    emissions_with_measures = trajectory.reference_level - selected
    total_required_cut = trajectory.baseline_1990 - target_level
    reference_contribution = trajectory.baseline_1990 - trajectory.reference_level
    if total_required_cut > 0:
        coverage = (reference_contribution + selected) / total_required_cut * 100
        reference_pct = reference_contribution / total_required_cut * 100
    else:
        coverage = reference_pct = 100.0
    return GapResult(
        mode=mode,
        target_key=scenario.key,
        target_level=target_level,
        selected_potential=selected,
        required_reduction=total_required_cut,
        coverage_percent=coverage,
        coverage_percent_clamped=_clamp_pct(coverage),
        gap=max(0.0, emissions_with_measures - target_level),
        resulting_level=emissions_with_measures,
        reaches_target=emissions_with_measures <= target_level,
        reference_contribution=reference_contribution,
        reference_coverage_percent_clamped=_clamp_pct(reference_pct),
        total_cut_from_baseline=trajectory.baseline_1990 - emissions_with_measures,
    )


# --- Conflicts ---

@dataclass(frozen=True)
class ConflictWarning:
    """Two or more overlapping measures are selected together."""
    key: str
    group: str
    ids: Tuple[str, ...]
    titles: Tuple[str, ...]
    rationale: str

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "group": self.group,
            "ids": list(self.ids),
            "titles": list(self.titles),
            "rationale": self.rationale,
        }


def detect_conflicts(
    selection: Iterable[str],
    conflict_groups: Sequence[ConflictGroup] = CONFLICT_GROUPS,
) -> List[ConflictWarning]:
    """
    Warn about conflict groups with at least two distinct ids selected.

    Ids come from the code prefix of each selected title. Warnings are keyed
    by the sorted id combination and deduplicated on that key. Advisory only.
    """
    titles_by_id: Dict[str, List[str]] = {}
    for title in selection:
        titles_by_id.setdefault(extract_measure_id(title), []).append(title)

    warnings = []
    seen = set()
    for group in conflict_groups:
        matched = sorted(i for i in group.ids if i in titles_by_id)
        if len(matched) < 2:
            continue
        key = "+".join(matched)
        if key in seen:
            continue
        seen.add(key)
        titles = sorted(t for i in matched for t in titles_by_id[i])
        warnings.append(ConflictWarning(
            key=key,
            group=group.name,
            ids=tuple(matched),
            titles=tuple(titles),
            rationale=group.rationale,
        ))
    return warnings


# --- Full view ---

@dataclass
class DashboardView:
    """Everything the rendering layer needs for one store revision."""
    visible_measures: List[MeasureRecord]
    rows: List[ComputedRow]
    aggregation: Aggregation
    gap: GapResult
    conflicts: List[ConflictWarning]
    selection_state: SelectionState
    selection: FrozenSet[str] = frozenset()

    @property
    def selected_rows(self) -> List[ComputedRow]:
        return [r for r in self.rows if r.title in self.selection]

    def to_dict(self) -> dict:
        return {
            "visible_titles": [m.title for m in self.visible_measures],
            "rows": [r.to_dict() for r in self.rows],
            "aggregation": self.aggregation.to_dict(),
            "gap": self.gap.to_dict(),
            "conflicts": [c.to_dict() for c in self.conflicts],
            "selection_state": self.selection_state.value,
        }


def compute_view(
    store: ParameterStore,
    catalog: Sequence[MeasureRecord] = CATALOG,
    trajectory: ReferenceTrajectory = REFERENCE_TRAJECTORY,
    mode: GapMode = GapMode.BASELINE_DECOMPOSITION,
    conflict_groups: Sequence[ConflictGroup] = CONFLICT_GROUPS,
    buckets: Sequence[CostBucket] = COST_BUCKETS,
) -> DashboardView:
    """Recompute every derived structure from the catalog and store."""
    rows = project_rows(catalog, store, buckets)
    visible = visible_measures(catalog, store)
    aggregation = aggregate(selected_rows(rows, store.selection), buckets)
    scenario = TARGET_SCENARIOS[store.selected_target]
    return DashboardView(
        visible_measures=visible,
        rows=rows,
        aggregation=aggregation,
        gap=analyze_gap(aggregation.grand_total, scenario, trajectory, mode),
        conflicts=detect_conflicts(store.selection, conflict_groups),
        selection_state=selection_state((m.title for m in visible), store.selection),
        selection=store.selection,
    )
