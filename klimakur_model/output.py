"""
Output management for session results.

Provides structured directory output with:
- results.json: Full results
- config.json: Echoed input config
- summary.md: Human-readable summary
- rows.csv: One row per catalog measure with resolved costs
- by_category.csv / by_cost_bucket.csv: Aggregates over the selection
- sweep.csv: Sweep points (sweep runs only)
- plots/: Generated visualizations (if matplotlib available)
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Union

from .catalog import TARGET_SCENARIOS, document_url
from .formatter import fmt_bn_nok, fmt_mt, fmt_number, fmt_pct, fmt_unit_cost
from .runner import RunResult


ROW_COLUMNS = [
    'id', 'title', 'category', 'selected', 'cost_range_label', 'potential_kt',
    'potential_mt', 'unit_cost', 'total_cost', 'is_assumed', 'is_overridden',
    'cost_bucket', 'document_url',
]
AGGREGATE_COLUMNS = ['key', 'count', 'total_potential', 'total_cost']


class OutputWriter:
    """
    Write session results to a structured directory.

    Output structure:
        output_dir/
            results.json
            config.json
            summary.md
            rows.csv
            by_category.csv
            by_cost_bucket.csv
            sweep.csv            (sweep runs only)
            plots/
                by_category.png
                by_cost_bucket.png
                target_gap.png
                cost_curve.png
                sweep.png        (sweep runs only)
    """

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    def write(self, result: RunResult, generate_plots: bool = True) -> None:
        """
        Write all output files.

        Args:
            result: RunResult to write
            generate_plots: Whether to generate plots (requires matplotlib)
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self._write_json('results.json', result.to_dict())
        self._write_json('config.json', result.config)
        with open(self.output_dir / 'summary.md', 'w', encoding='utf-8') as f:
            f.write(format_summary_markdown(result))

        rows = []
        for row in result.view.rows:
            d = row.to_dict()
            d['selected'] = row.title in result.store.selection
            d['document_url'] = document_url(row.measure)
            rows.append(d)
        self._write_csv('rows.csv', ROW_COLUMNS, rows)

        aggregation = result.view.aggregation.to_dict()
        self._write_csv('by_category.csv', AGGREGATE_COLUMNS, aggregation['by_category'])
        self._write_csv('by_cost_bucket.csv', AGGREGATE_COLUMNS, aggregation['by_cost_bucket'])

        if result.sweep is not None:
            s = result.sweep
            points = [
                {'value': v, 'total_cost': c, 'avg_unit_cost': a}
                for v, c, a in zip(s.param_values, s.total_cost, s.avg_unit_cost)
            ]
            self._write_csv('sweep.csv', ['value', 'total_cost', 'avg_unit_cost'], points)

        if generate_plots:
            self._write_plots(result)

    def _write_json(self, name: str, data: Any) -> None:
        with open(self.output_dir / name, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)

    def _write_csv(self, name: str, columns: List[str], data: List[Dict[str, Any]]) -> None:
        with open(self.output_dir / name, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=columns, extrasaction='ignore')
            writer.writeheader()
            writer.writerows(data)

    def _write_plots(self, result: RunResult) -> None:
        """Generate and save plots."""
        from .plot import HAS_MATPLOTLIB
        if not HAS_MATPLOTLIB:
            return

        import matplotlib.pyplot as plt
        from .plot import (
            plot_by_category, plot_by_cost_bucket, plot_cost_curve,
            plot_sweep, plot_target_gap,
        )

        plots_dir = self.output_dir / 'plots'
        plots_dir.mkdir(exist_ok=True)
        data = result.to_dict()

        plots = [
            ('by_category.png', plot_by_category),
            ('by_cost_bucket.png', plot_by_cost_bucket),
            ('target_gap.png', plot_target_gap),
            ('cost_curve.png', plot_cost_curve),
        ]
        if result.sweep is not None:
            plots.append(('sweep.png', plot_sweep))

        for filename, fn in plots:
            fig = fn(data, save_path=plots_dir / filename, show=False)
            plt.close(fig)


def format_summary_markdown(result: RunResult) -> str:
    """Markdown summary of a run."""
    view = result.view
    total = view.aggregation.grand_total
    gap = view.gap
    scenario = TARGET_SCENARIOS[gap.target_key]

    lines = [f"# {result.name}", ""]
    description = result.config.get('description')
    if description:
        lines += [description, ""]

    lines += [
        "## Selection",
        "",
        f"- Measures selected: {len(view.selected_rows)} of {len(view.rows)}",
        f"- Total potential: {fmt_mt(total.potential)}",
        f"- Total cost: {fmt_bn_nok(total.cost)}",
        f"- Average unit cost: {fmt_unit_cost(total.avg_unit_cost)}",
        f"- Share token: `{result.meta.get('token') or '(default)'}`",
        "",
        f"## Target: {scenario.label}",
        "",
        f"- Gap mode: {gap.mode.value}",
        f"- Target level: {fmt_mt(gap.target_level)}",
        f"- Resulting level: {fmt_mt(gap.resulting_level)}",
        f"- Coverage: {fmt_pct(gap.coverage_percent)}",
        f"- Remaining gap: {fmt_mt(gap.gap)}",
        f"- Target reached: {'Yes' if gap.reaches_target else 'No'}",
        "",
        "## By sector",
        "",
        "| Sector | Measures | Potential (Mt) | Cost (mrd kr) |",
        "|---|---:|---:|---:|",
    ]
    for b in view.aggregation.by_category:
        lines.append(f"| {b.key} | {b.count} | {fmt_number(b.total_potential, 2)} "
                     f"| {fmt_number(b.total_cost, 2)} |")

    lines += [
        "",
        "## By unit cost",
        "",
        "| Bucket | Measures | Potential (Mt) | Cost (mrd kr) |",
        "|---|---:|---:|---:|",
    ]
    for b in view.aggregation.by_cost_bucket:
        lines.append(f"| {b.key} | {b.count} | {fmt_number(b.total_potential, 2)} "
                     f"| {fmt_number(b.total_cost, 2)} |")

    lines += [
        "",
        "## All targets",
        "",
        "| Target | Coverage | Gap (Mt) | Reached |",
        "|---|---:|---:|---|",
    ]
    for key, g in result.targets.items():
        lines.append(f"| {TARGET_SCENARIOS[key].label} | {fmt_pct(g.coverage_percent)} "
                     f"| {fmt_number(g.gap, 2)} | {'Yes' if g.reaches_target else 'No'} |")

    if view.conflicts:
        lines += ["", "## Overlapping measures", ""]
        for c in view.conflicts:
            lines.append(f"- **{', '.join(c.ids)}**: {c.rationale}")

    if result.sweep is not None:
        s = result.sweep
        lines += [
            "",
            f"## Sweep: {s.param_name}",
            "",
            "| Value (kr/t) | Total cost (mrd kr) | Avg unit cost (kr/t) |",
            "|---:|---:|---:|",
        ]
        for v, c, a in zip(s.param_values, s.total_cost, s.avg_unit_cost):
            lines.append(f"| {fmt_number(v)} | {fmt_number(c, 2)} | {fmt_number(a)} |")

    lines.append("")
    return "\n".join(lines)


def save_result_dir(result: RunResult, output_dir: Union[str, Path], generate_plots: bool = True) -> None:
    """Convenience function to write a result directory."""
    OutputWriter(output_dir).write(result, generate_plots=generate_plots)


def load_result_dir(output_dir: Union[str, Path]) -> Dict[str, Any]:
    """Load results.json from an output directory."""
    with open(Path(output_dir) / 'results.json', 'r', encoding='utf-8') as f:
        return json.load(f)
