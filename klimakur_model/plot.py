"""
Plotting utilities for visualizing dashboard results.

Requires the 'plot' optional dependency: pip install -e ".[plot]"

Every function accepts either a RunResult or the dict stored in results.json,
so saved runs can be re-plotted.

Usage:
    from klimakur_model import Runner, load_config
    from klimakur_model.plot import plot_cost_curve, plot_target_gap

    result = Runner(load_config("configs/high_unknown_cost.json")).run()
    plot_cost_curve(result)
    plot_target_gap(result, save_path="gap.png", show=False)
"""

from dataclasses import dataclass
from typing import Optional, Union, Dict, Any, Tuple
from pathlib import Path

try:
    import matplotlib.pyplot as plt
    import matplotlib.patches as mpatches
    import numpy as np
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False


COLORS = {
    'potential': '#1e8449',     # Dark green for emission cuts
    'cost': '#1a5276',          # Dark blue for money
    'reference': '#7fb3d5',     # Light blue for the reference trajectory
    'gap': '#e74c3c',           # Red for what is missing
    'assumed': '#f5b041',       # Amber for assumed costs
    'neutral': '#7f8c8d',
}

# Bucket key -> color, in COST_BUCKETS order
BUCKET_COLORS = {
    'Antatt': '#f5b041',
    '<500': '#27ae60',
    '500-1500': '#f1c40f',
    '>1500': '#c0392b',
}


@dataclass
class PlotStyle:
    """Centralized style configuration for all plots.

    Override individual fields to customize: ``PlotStyle(dpi=150)``.
    """

    bar_alpha: float = 0.85
    bar_edgecolor: str = 'black'
    bar_linewidth: float = 0.5
    bar_hatch_assumed: str = '//'

    line_width: float = 1.5
    marker_size: int = 7

    grid: bool = True
    grid_alpha: float = 0.3
    grid_linestyle: str = '--'
    grid_color: str = '#cccccc'

    dpi: int = 200
    facecolor: str = 'white'

    title_fontsize: int = 13
    axis_label_fontsize: int = 11
    tick_fontsize: int = 10
    annotation_fontsize: int = 9
    legend_fontsize: int = 10

    hide_top_spine: bool = True
    hide_right_spine: bool = True
    spine_color: str = '#cccccc'


DEFAULT_STYLE = PlotStyle()


def _apply_common_style(ax, style: PlotStyle, grid_axis: str = 'y'):
    """Apply shared style settings (grid, spines, background) to an axes."""
    ax.set_facecolor(style.facecolor)
    if style.grid:
        ax.grid(True, axis=grid_axis, alpha=style.grid_alpha,
                linestyle=style.grid_linestyle, color=style.grid_color)
        ax.set_axisbelow(True)
    if style.hide_top_spine:
        ax.spines['top'].set_visible(False)
    if style.hide_right_spine:
        ax.spines['right'].set_visible(False)
    ax.spines['left'].set_color(style.spine_color)
    ax.spines['bottom'].set_color(style.spine_color)


def _check_matplotlib():
    """Raise helpful error if matplotlib is not installed."""
    if not HAS_MATPLOTLIB:
        raise ImportError(
            "Plotting requires matplotlib. Install with: pip install -e '.[plot]'"
        )


def _as_dict(result) -> Dict[str, Any]:
    if hasattr(result, 'to_dict'):
        return result.to_dict()
    if isinstance(result, dict):
        return result
    raise ValueError("Expected RunResult or dict from results.json")


def _session_name(data: Dict[str, Any]) -> str:
    return data.get('meta', {}).get('session_name', 'Klimakur')


def _finish(fig, ax, style: PlotStyle, title: str, save_path, show: bool):
    ax.set_title(title, fontsize=style.title_fontsize, fontweight='bold', color='#333333')
    plt.tight_layout()
    if save_path:
        plt.savefig(save_path, dpi=style.dpi, bbox_inches='tight', facecolor=style.facecolor)
    if show:
        plt.show()
    return fig


def plot_by_category(
    result,
    metric: str = 'potential',
    save_path: Optional[Union[str, Path]] = None,
    figsize: Tuple[float, float] = (10, 6),
    show: bool = True,
    title: Optional[str] = None,
    style: Optional[PlotStyle] = None,
) -> Optional[Any]:
    """
    Horizontal bars of selected potential (Mt) or cost (billion NOK) per category.

    Args:
        result: RunResult object or results dict
        metric: 'potential' or 'cost'
        save_path: Optional path to save the figure
        show: Whether to display the plot
    """
    _check_matplotlib()
    style = style or DEFAULT_STYLE
    if metric not in ('potential', 'cost'):
        raise ValueError(f"metric must be 'potential' or 'cost', got {metric!r}")

    data = _as_dict(result)
    buckets = data['view']['aggregation']['by_category']
    labels = [b['key'] for b in buckets]
    values = [b[f'total_{metric}'] for b in buckets]

    fig, ax = plt.subplots(figsize=figsize)
    fig.patch.set_facecolor(style.facecolor)
    y = np.arange(len(labels))
    ax.barh(y, values, color=COLORS[metric], alpha=style.bar_alpha,
            edgecolor=style.bar_edgecolor, linewidth=style.bar_linewidth)
    ax.set_yticks(y)
    ax.set_yticklabels(labels, fontsize=style.tick_fontsize)
    ax.invert_yaxis()

    unit = 'Mt CO2e' if metric == 'potential' else 'mrd kr'
    for yi, v in zip(y, values):
        ax.text(v, yi, f' {v:.2f}', va='center', fontsize=style.annotation_fontsize)
    ax.set_xlabel(f"{'Potential' if metric == 'potential' else 'Cost'} ({unit})",
                  fontsize=style.axis_label_fontsize)
    _apply_common_style(ax, style, grid_axis='x')

    if title is None:
        title = f"{'Potential' if metric == 'potential' else 'Cost'} by sector: {_session_name(data)}"
    return _finish(fig, ax, style, title, save_path, show)


def plot_by_cost_bucket(
    result,
    save_path: Optional[Union[str, Path]] = None,
    figsize: Tuple[float, float] = (9, 5),
    show: bool = True,
    title: Optional[str] = None,
    style: Optional[PlotStyle] = None,
) -> Optional[Any]:
    """Selected potential per unit-cost bucket, annotated with measure counts."""
    _check_matplotlib()
    style = style or DEFAULT_STYLE

    data = _as_dict(result)
    buckets = data['view']['aggregation']['by_cost_bucket']
    labels = [b['key'] for b in buckets]
    values = [b['total_potential'] for b in buckets]
    colors = [BUCKET_COLORS.get(k, COLORS['neutral']) for k in labels]

    fig, ax = plt.subplots(figsize=figsize)
    fig.patch.set_facecolor(style.facecolor)
    x = np.arange(len(labels))
    bars = ax.bar(x, values, color=colors, alpha=style.bar_alpha,
                  edgecolor=style.bar_edgecolor, linewidth=style.bar_linewidth)
    for bar, b in zip(bars, buckets):
        ax.annotate(f"{b['count']} tiltak\n{b['total_cost']:.1f} mrd kr",
                    (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                    ha='center', va='bottom', fontsize=style.annotation_fontsize)
    ax.set_xticks(x)
    ax.set_xticklabels([f"{k} kr/t" if k[0] in '<>0123456789' else k for k in labels],
                       fontsize=style.tick_fontsize)
    ax.set_ylabel('Potential (Mt CO2e)', fontsize=style.axis_label_fontsize)
    _apply_common_style(ax, style)

    if title is None:
        title = f"Potential by unit cost: {_session_name(data)}"
    return _finish(fig, ax, style, title, save_path, show)


def plot_target_gap(
    result,
    save_path: Optional[Union[str, Path]] = None,
    figsize: Tuple[float, float] = (10, 3.5),
    show: bool = True,
    title: Optional[str] = None,
    style: Optional[PlotStyle] = None,
) -> Optional[Any]:
    """
    Progress bar towards the selected target.

    In baseline-decomposition mode the reference trajectory's share is drawn
    first, then the selected measures, then the remaining gap.
    """
    _check_matplotlib()
    style = style or DEFAULT_STYLE

    data = _as_dict(result)
    gap = data['view']['gap']
    required = gap['required_reduction']
    reference = gap.get('reference_contribution') or 0.0
    selected = gap['selected_potential']
    missing = gap['gap']

    fig, ax = plt.subplots(figsize=figsize)
    fig.patch.set_facecolor(style.facecolor)

    left = 0.0
    handles = []
    if reference:
        ax.barh(0, reference, left=left, color=COLORS['reference'],
                edgecolor=style.bar_edgecolor, linewidth=style.bar_linewidth)
        handles.append(mpatches.Patch(color=COLORS['reference'], label='Reference trajectory'))
        left += reference
    ax.barh(0, selected, left=left, color=COLORS['potential'],
            edgecolor=style.bar_edgecolor, linewidth=style.bar_linewidth)
    handles.append(mpatches.Patch(color=COLORS['potential'], label='Selected measures'))
    left += selected
    if missing > 0:
        ax.barh(0, missing, left=left, color=COLORS['gap'], alpha=0.35,
                edgecolor=COLORS['gap'], linewidth=style.bar_linewidth, hatch='//')
        handles.append(mpatches.Patch(facecolor='white', edgecolor=COLORS['gap'],
                                      hatch='//', label='Remaining gap'))

    ax.axvline(required, color='#333333', linestyle='--', linewidth=style.line_width)
    ax.text(required, 0.45, f" Required {required:.1f} Mt", fontsize=style.annotation_fontsize,
            va='bottom')
    ax.set_yticks([])
    ax.set_xlabel('Mt CO2e', fontsize=style.axis_label_fontsize)
    ax.set_xlim(0, max(required, left) * 1.1 or 1.0)
    ax.legend(handles=handles, loc='upper center', bbox_to_anchor=(0.5, -0.35),
              ncol=len(handles), frameon=False, fontsize=style.legend_fontsize)
    _apply_common_style(ax, style, grid_axis='x')

    if title is None:
        status = 'reached' if gap['reaches_target'] else f"gap {missing:.2f} Mt"
        title = (f"Target {gap['target_key']} %: "
                 f"{gap['coverage_percent_clamped']:.0f} % covered ({status})")
    return _finish(fig, ax, style, title, save_path, show)


def plot_cost_curve(
    result,
    save_path: Optional[Union[str, Path]] = None,
    figsize: Tuple[float, float] = (12, 6),
    show: bool = True,
    title: Optional[str] = None,
    style: Optional[PlotStyle] = None,
) -> Optional[Any]:
    """
    Abatement cost curve: bar width is potential, bar height is unit cost.

    Measures with assumed cost are hatched.
    """
    _check_matplotlib()
    style = style or DEFAULT_STYLE

    data = _as_dict(result)
    points = data['cost_curve']['points']

    fig, ax = plt.subplots(figsize=figsize)
    fig.patch.set_facecolor(style.facecolor)

    if points:
        widths = np.array([p['potential'] for p in points])
        lefts = np.concatenate([[0.0], np.cumsum(widths)[:-1]])
        heights = [p['unit_cost'] for p in points]
        colors = [COLORS['assumed'] if p['is_assumed'] else COLORS['potential'] for p in points]
        hatches = [style.bar_hatch_assumed if p['is_assumed'] else None for p in points]
        for left, w, h, c, hatch in zip(lefts, widths, heights, colors, hatches):
            ax.bar(left, h, width=w, align='edge', color=c, alpha=style.bar_alpha,
                   edgecolor=style.bar_edgecolor, linewidth=style.bar_linewidth, hatch=hatch)

    required = data['view']['gap']['required_reduction']
    reference = data['view']['gap'].get('reference_contribution')
    if reference is not None:
        required = required - reference
    if required > 0:
        ax.axvline(required, color=COLORS['gap'], linestyle='--', linewidth=style.line_width)
        ax.text(required, ax.get_ylim()[1] * 0.95, ' Needed', color=COLORS['gap'],
                fontsize=style.annotation_fontsize, va='top')

    ax.legend(handles=[
        mpatches.Patch(color=COLORS['potential'], label='Known cost'),
        mpatches.Patch(facecolor=COLORS['assumed'], hatch=style.bar_hatch_assumed,
                       label='Assumed cost'),
    ], loc='upper left', fontsize=style.legend_fontsize)
    ax.set_xlabel('Cumulative potential (Mt CO2e)', fontsize=style.axis_label_fontsize)
    ax.set_ylabel('Unit cost (kr/t CO2e)', fontsize=style.axis_label_fontsize)
    _apply_common_style(ax, style)

    if title is None:
        title = f"Abatement cost curve: {_session_name(data)}"
    return _finish(fig, ax, style, title, save_path, show)


def plot_sweep(
    result,
    save_path: Optional[Union[str, Path]] = None,
    figsize: Tuple[float, float] = (10, 6),
    show: bool = True,
    title: Optional[str] = None,
    style: Optional[PlotStyle] = None,
) -> Optional[Any]:
    """Total cost and average unit cost across a cost sweep."""
    _check_matplotlib()
    style = style or DEFAULT_STYLE

    data = _as_dict(result)
    if not data.get('sweep'):
        raise ValueError("Result has no sweep data")
    sweep = data['sweep']
    x = sweep['param_values']

    fig, ax = plt.subplots(figsize=figsize)
    fig.patch.set_facecolor(style.facecolor)
    ax.plot(x, sweep['total_cost'], 'o-', color=COLORS['cost'], linewidth=style.line_width,
            markersize=style.marker_size, label='Total cost')
    ax.set_xlabel(f"{sweep['param_name']} (kr/t)", fontsize=style.axis_label_fontsize)
    ax.set_ylabel('Total cost (mrd kr)', fontsize=style.axis_label_fontsize)

    ax2 = ax.twinx()
    ax2.plot(x, sweep['avg_unit_cost'], 's--', color=COLORS['assumed'],
             linewidth=style.line_width, markersize=style.marker_size - 2,
             label='Average unit cost')
    ax2.set_ylabel('Average unit cost (kr/t)', fontsize=style.axis_label_fontsize)

    lines = ax.get_lines() + ax2.get_lines()
    ax.legend(lines, [l.get_label() for l in lines], loc='upper left',
              fontsize=style.legend_fontsize)
    _apply_common_style(ax, style)
    ax2.spines['top'].set_visible(False)

    if title is None:
        title = f"Cost sensitivity: {_session_name(data)}"
    return _finish(fig, ax, style, title, save_path, show)


def plot_result(
    result,
    save_path: Optional[Union[str, Path]] = None,
    show: bool = True,
    **kwargs,
) -> Optional[Any]:
    """
    Plot the most informative chart for a result.

    Sweeps plot the cost sensitivity; other runs plot the abatement cost curve.
    """
    _check_matplotlib()
    data = _as_dict(result)
    if data.get('sweep'):
        return plot_sweep(data, save_path=save_path, show=show, **kwargs)
    return plot_cost_curve(data, save_path=save_path, show=show, **kwargs)
