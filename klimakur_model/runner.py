"""
Session runner for executing configs and producing results.

Orchestrates config -> parameter store -> dashboard view (+ sweep) -> structured output.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, Sequence
import json
import logging

from .analysis import CostCurve, abatement_cost_curve, compare_targets
from .catalog import CATALOG, MeasureRecord, validate_catalog
from .codec import encode
from .config import DashboardConfig, validate_config
from .model import DashboardView, GapResult, compute_view
from .store import ParameterStore
from .sweep import CostSweeper, SweepResult

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _format_timestamp() -> str:
    """Return ISO 8601 timestamp in UTC."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class RunResult:
    """
    Complete result from running a session config.

    Contains metadata, echoed config, the final store and everything derived
    from it.
    """
    meta: Dict[str, Any]
    config: dict
    store: ParameterStore
    view: DashboardView
    cost_curve: CostCurve
    targets: Dict[str, GapResult]
    sweep: Optional[SweepResult] = None

    @property
    def name(self) -> str:
        return self.meta.get("session_name", "")

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        d = {
            "meta": self.meta,
            "config": self.config,
            "store": {
                "default_unknown_cost": self.store.default_unknown_cost,
                "selected_target": self.store.selected_target,
                "cost_overrides": dict(self.store.cost_overrides),
                "range_costs": dict(self.store.range_costs),
                "selected_count": len(self.store.selection),
            },
            "view": self.view.to_dict(),
            "cost_curve": self.cost_curve.to_dict(),
            "targets": {k: g.to_dict() for k, g in self.targets.items()},
        }
        if self.sweep is not None:
            d["sweep"] = self.sweep.to_dict()
        return d


class Runner:
    """
    Session runner that executes configs and produces structured results.

    Example:
        config = load_config("configs/high_unknown_cost.json")
        runner = Runner(config)
        result = runner.run()
        save_result(result, "results/high_unknown_cost_20260101.json")
    """

    def __init__(
        self,
        config: DashboardConfig,
        config_path: Optional[str] = None,
        catalog: Sequence[MeasureRecord] = CATALOG,
        store: Optional[ParameterStore] = None,
    ):
        """
        Initialize runner with a session config.

        Args:
            config: Session configuration
            config_path: Optional path to config file (for metadata)
            catalog: Measure catalog to evaluate against
            store: Starting store; replaces the config's token when given
                (the config's parameters are still applied on top)
        """
        self.config = config
        self.config_path = config_path
        self.catalog = catalog

        for issue in validate_catalog(catalog):
            logger.debug("Catalog: %s", issue)

        errors = validate_config(config, catalog)
        if errors:
            raise ValueError(f"Invalid config: {'; '.join(errors)}")

        if store is None:
            self.store = config.to_store(catalog)
        else:
            self.store = config.parameters.apply(store, catalog)

    def _compute_sweep(self) -> SweepResult:
        sweep = self.config.sweep
        sweeper = CostSweeper(self.store, self.catalog)
        return sweeper.sweep_parameter(sweep.parameter, sweep.resolve_values())

    def run(self) -> RunResult:
        """
        Evaluate the session and return results.

        Returns:
            RunResult containing metadata, config echo, view and analyses
        """
        cfg = self.config
        trajectory = cfg.to_trajectory()
        mode = cfg.mode

        view = compute_view(self.store, self.catalog, trajectory=trajectory, mode=mode)
        total = view.aggregation.grand_total
        logger.info("Session '%s': %d of %d measures selected, %.2f Mt",
                    cfg.name, len(view.selected_rows), len(view.rows), total.potential)

        meta = {
            "timestamp": _format_timestamp(),
            "version": VERSION,
            "config_file": self.config_path,
            "session_name": cfg.name,
            "gap_mode": mode.value,
            "token": encode(self.store, self.catalog),
        }

        return RunResult(
            meta=meta,
            config=cfg.to_dict(),
            store=self.store,
            view=view,
            cost_curve=abatement_cost_curve(view.selected_rows),
            targets=compare_targets(total, trajectory, mode),
            sweep=self._compute_sweep() if cfg.is_sweep() else None,
        )


def save_result(result: RunResult, path: str | Path) -> None:
    """
    Save a run result to JSON file.

    Args:
        result: RunResult to save
        path: Output file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)


def load_result(path: str | Path) -> dict:
    """Load a previous run result from JSON file."""
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)

