"""
Klimakur climate-measure dashboard model

Computation engine behind an interactive dashboard of Norwegian climate
measures: resolve unit costs, aggregate the selected measures by sector and
by cost bucket, compare the selection with national 2030/2035 targets, warn
about overlapping measures and encode the whole state as a share token.

Example usage (programmatic):
    from klimakur_model import ParameterStore, compute_view

    store = ParameterStore.default().with_target("55").with_default_unknown_cost(2000)
    view = compute_view(store)
    print(f"Coverage: {view.gap.coverage_percent:.1f} %")

Example usage (JSON config):
    from klimakur_model import load_config, Runner, save_result

    config = load_config("configs/high_unknown_cost.json")
    result = Runner(config).run()
    save_result(result, "results/high_unknown_cost.json")

CLI usage:
    klimakur configs/high_unknown_cost.json
    python -m klimakur_model --token <token> --rows
"""

from .catalog import (
    CATALOG,
    CATEGORIES,
    COST_BUCKETS,
    CONFLICT_GROUPS,
    REFERENCE_TRAJECTORY,
    TARGET_SCENARIOS,
    ConflictGroup,
    CostBucket,
    MeasureRecord,
    ReferenceTrajectory,
    TargetScenario,
    document_url,
    extract_measure_id,
    find_measures,
    validate_catalog,
)

from .store import (
    DEFAULT_UNKNOWN_COST,
    ParameterStore,
    SelectionState,
    coerce_cost,
)

from .model import (
    Aggregation,
    ComputedRow,
    ConflictWarning,
    DashboardView,
    GapMode,
    GapResult,
    GrandTotal,
    aggregate,
    analyze_gap,
    compute_view,
    detect_conflicts,
    project_rows,
    resolve_unit_cost,
    visible_measures,
)

from .codec import (
    decode,
    encode,
    restore,
)

from .persistence import (
    JsonFileStore,
    build_share_link,
    load_initial_store,
    load_saved_store,
    parse_fragment,
    persist_store,
    share_link,
)

from .analysis import (
    CostCurve,
    abatement_cost_curve,
    compare_targets,
)

from .sweep import (
    CostSweeper,
    SweepResult,
)

from .config import (
    DashboardConfig,
    ParametersSpec,
    SweepSpec,
    TrajectorySpec,
    load_config,
    save_config,
    validate_config,
)

from .runner import (
    Runner,
    RunResult,
    load_result,
    save_result,
    VERSION,
)

__version__ = VERSION

__all__ = [
    # Catalog
    "CATALOG",
    "CATEGORIES",
    "COST_BUCKETS",
    "CONFLICT_GROUPS",
    "REFERENCE_TRAJECTORY",
    "TARGET_SCENARIOS",
    "ConflictGroup",
    "CostBucket",
    "MeasureRecord",
    "ReferenceTrajectory",
    "TargetScenario",
    "document_url",
    "extract_measure_id",
    "find_measures",
    "validate_catalog",
    # Store
    "DEFAULT_UNKNOWN_COST",
    "ParameterStore",
    "SelectionState",
    "coerce_cost",
    # Model
    "Aggregation",
    "ComputedRow",
    "ConflictWarning",
    "DashboardView",
    "GapMode",
    "GapResult",
    "GrandTotal",
    "aggregate",
    "analyze_gap",
    "compute_view",
    "detect_conflicts",
    "project_rows",
    "resolve_unit_cost",
    "visible_measures",
    # Codec and persistence
    "decode",
    "encode",
    "restore",
    "JsonFileStore",
    "build_share_link",
    "load_initial_store",
    "load_saved_store",
    "parse_fragment",
    "persist_store",
    "share_link",
    # Analysis
    "CostCurve",
    "abatement_cost_curve",
    "compare_targets",
    "CostSweeper",
    "SweepResult",
    # Config
    "DashboardConfig",
    "ParametersSpec",
    "SweepSpec",
    "TrajectorySpec",
    "load_config",
    "save_config",
    "validate_config",
    # Runner
    "Runner",
    "RunResult",
    "load_result",
    "save_result",
    "VERSION",
]
