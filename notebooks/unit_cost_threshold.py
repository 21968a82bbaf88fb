import sys
sys.path.insert(0, '..')

from klimakur_model import (
    CATALOG,
    TARGET_SCENARIOS,
    GapMode,
    ParameterStore,
    compare_targets,
    compute_view,
    project_rows,
)
import numpy as np
import matplotlib.pyplot as plt


def compute_threshold_sweep(
    thresholds=None,
    default_unknown_cost: float = 1500,
    mode: GapMode = GapMode.BASELINE_DECOMPOSITION,
):
    """
    Select every measure at or below a unit-cost ceiling and compare with each target.

    Returns:
        dict with 'thresholds', 'potential', 'cost', 'coverage' (target key -> list)
    """
    if thresholds is None:
        thresholds = np.arange(0, 3001, 250)

    base = ParameterStore.default(CATALOG).with_default_unknown_cost(default_unknown_cost)
    rows = project_rows(CATALOG, base)

    potential = []
    cost = []
    coverage = {key: [] for key in TARGET_SCENARIOS}

    for limit in thresholds:
        store = base.with_selection(r.title for r in rows if r.unit_cost <= limit)
        total = compute_view(store, mode=mode).aggregation.grand_total
        potential.append(total.potential)
        cost.append(total.cost)
        for key, gap in compare_targets(total, mode=mode).items():
            coverage[key].append(gap.coverage_percent_clamped)

    return {
        'thresholds': list(thresholds),
        'potential': potential,
        'cost': cost,
        'coverage': coverage,
    }


def plot_threshold_sweep(sweep_result, title_suffix=""):
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 5))
    x = sweep_result['thresholds']

    for key, values in sweep_result['coverage'].items():
        ax1.plot(x, values, 'o-', linewidth=1.5, markersize=5,
                 label=TARGET_SCENARIOS[key].label)
    ax1.axhline(100, color='#333333', linestyle='--', linewidth=1)
    ax1.set_xlabel('Highest accepted unit cost (kr/t)')
    ax1.set_ylabel('Target coverage (%)')
    ax1.set_title(f'Coverage by cost ceiling{title_suffix}')
    ax1.legend()
    ax1.grid(True, alpha=0.3, linestyle='--')

    ax2.plot(sweep_result['potential'], sweep_result['cost'], 's-', color='#1a5276')
    for t, p, c in zip(x, sweep_result['potential'], sweep_result['cost']):
        ax2.annotate(f'{t:.0f}', (p, c), textcoords='offset points', xytext=(4, 4), fontsize=8)
    ax2.set_xlabel('Selected potential (Mt CO2e)')
    ax2.set_ylabel('Total cost (mrd kr)')
    ax2.set_title(f'Cost of reaching further{title_suffix}')
    ax2.grid(True, alpha=0.3, linestyle='--')

    plt.tight_layout()
    return fig


# Unknown costs assumed at 1500 kr/t, reference trajectory counted towards the target
sweep = compute_threshold_sweep(default_unknown_cost=1500)

print(f"{'kr/t':<8} {'Mt':<8} {'mrd kr':<10} " +
      " ".join(f"{k + ' %':<8}" for k in TARGET_SCENARIOS))
for i, t in enumerate(sweep['thresholds']):
    print(f"{t:<8.0f} {sweep['potential'][i]:<8.2f} {sweep['cost'][i]:<10.2f} " +
          " ".join(f"{sweep['coverage'][k][i]:<8.1f}" for k in TARGET_SCENARIOS))

fig = plot_threshold_sweep(sweep, " (baseline decomposition)")
plt.show()
