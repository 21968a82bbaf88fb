"""
Command-line interface for evaluating dashboard sessions.

Usage:
    klimakur                                   # default session
    klimakur configs/high_unknown_cost.json
    klimakur configs/*.json --output-dir results/
    klimakur --url "https://example.org/klimakur#s=eyJ0IjoiNTUifQ" --rows
    klimakur configs/sweep.json --stdout
    klimakur --state-file ~/.klimakur.json --save-state --share-url https://example.org/klimakur
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .catalog import CATALOG, TARGET_SCENARIOS
from .config import DashboardConfig, load_config, validate_config
from .formatter import (
    badge, colorize, fmt_bn_nok, fmt_mt, fmt_number, fmt_pct, fmt_unit_cost,
    heading, info_line, kv_block, note_block, progress_bar, supports_color,
    table, title, warning_line,
)
from .model import GapMode
from .output import OutputWriter
from .persistence import JsonFileStore, load_saved_store, persist_store, share_link
from .plot import HAS_MATPLOTLIB as HAS_PLOT, plot_result
from .runner import Runner, RunResult, save_result


def format_result_summary(result: RunResult, show_rows: bool = False) -> str:
    """Format a human-readable summary of a run."""
    view = result.view
    total = view.aggregation.grand_total
    gap = view.gap
    scenario = TARGET_SCENARIOS[gap.target_key]
    out = [title(f"Klimakur: {result.name}"), ""]

    items = [
        ("Target", scenario.label),
        ("Gap mode", gap.mode.value),
        ("Selected", f"{len(view.selected_rows)} of {len(view.rows)} measures"),
        ("Potential", fmt_mt(total.potential)),
        ("Cost", fmt_bn_nok(total.cost)),
        ("Avg unit cost", fmt_unit_cost(total.avg_unit_cost)),
    ]
    if result.store.range_costs:
        items.append(("Repriced tiers", ", ".join(
            f"{label} = {fmt_unit_cost(cost)}" for label, cost in sorted(result.store.range_costs.items()))))
    out.append(kv_block(items))
    out.append("")

    out.append(heading("Target coverage"))
    out.append("  " + progress_bar(gap.coverage_percent_clamped,
                                   reference_percent=gap.reference_coverage_percent_clamped))
    if gap.mode == GapMode.BASELINE_DECOMPOSITION:
        out.append(info_line(f"Reference trajectory cuts {fmt_mt(gap.reference_contribution)} "
                             f"from 1990"))
    out.append(badge("Resulting level", f"{fmt_mt(gap.resulting_level)} "
                                        f"(target {fmt_mt(gap.target_level)})"))
    if gap.reaches_target:
        out.append(badge("Target reached", f"{fmt_pct(gap.coverage_percent)} coverage"))
    else:
        out.append(badge("Gap to target", fmt_mt(gap.gap)))
    out.append("")

    out.append(heading("By sector"))
    out.append(table(
        ["Sector", "Measures", "Mt", "mrd kr"],
        [[b.key, b.count, fmt_number(b.total_potential, 2), fmt_number(b.total_cost, 2)]
         for b in view.aggregation.by_category],
        aligns=['l', 'r', 'r', 'r'],
    ))
    out.append("")

    out.append(heading("By unit cost"))
    out.append(table(
        ["Bucket", "Measures", "Mt", "mrd kr"],
        [[b.key, b.count, fmt_number(b.total_potential, 2), fmt_number(b.total_cost, 2)]
         for b in view.aggregation.by_cost_bucket],
        aligns=['l', 'r', 'r', 'r'],
    ))
    out.append("")

    out.append(heading("All targets"))
    out.append(table(
        ["Target", "Coverage", "Gap (Mt)", "Reached"],
        [[TARGET_SCENARIOS[k].label, fmt_pct(g.coverage_percent), fmt_number(g.gap, 2),
          "Yes" if g.reaches_target else "No"]
         for k, g in result.targets.items()],
        aligns=['l', 'r', 'r', 'c'],
    ))

    if view.conflicts:
        out.append("")
        out.append(heading("Overlapping measures"))
        for c in view.conflicts:
            out.append(warning_line(f"{', '.join(c.ids)}: {c.rationale}"))

    if show_rows:
        out.append("")
        out.append(heading(f"Measures ({view.selection_state.value} visible selected)"))
        rows_by_index = {id(r.measure): r for r in view.rows}
        table_rows = []
        for m in view.visible_measures:
            r = rows_by_index[id(m)]
            table_rows.append([
                "x" if m.title in result.store.selection else "",
                m.title if len(m.title) <= 50 else m.title[:49] + "…",
                fmt_number(r.potential_mt, 3),
                fmt_number(r.unit_cost) + ("*" if r.is_assumed else ""),
                fmt_number(r.total_cost, 3),
            ])
        out.append(table(["", "Measure", "Mt", "kr/t", "mrd kr"], table_rows,
                         aligns=['c', 'l', 'r', 'r', 'r']))
        out.append(note_block(["* assumed cost (unknown in catalog)"]))

    if result.sweep is not None:
        s = result.sweep
        out.append("")
        out.append(heading(f"Sweep: {s.param_name}"))
        out.append(table(
            ["kr/t", "Total mrd kr", "Avg kr/t"],
            [[fmt_number(v), fmt_number(c, 2), fmt_number(a)]
             for v, c, a in zip(s.param_values, s.total_cost, s.avg_unit_cost)],
            aligns=['r', 'r', 'r'],
        ))
        out.append(info_line(f"{fmt_mt(s.affected_potential)} priced by this parameter "
                             f"({fmt_number(s.cost_slope, 4)} mrd kr per kr/t)"))

    return "\n".join(out)


def run_single_config(
    config: DashboardConfig,
    config_path: Optional[Path] = None,
    fragment: Optional[str] = None,
    storage: Optional[JsonFileStore] = None,
    save_state: bool = False,
    share_base_url: Optional[str] = None,
    output_path: Optional[Path] = None,
    output_dir: Optional[Path] = None,
    stdout: bool = False,
    quiet: bool = False,
    show_rows: bool = False,
    use_color: bool = False,
    plot: bool = False,
    plot_save_path: Optional[Path] = None,
) -> bool:
    """
    Evaluate one session config.

    Returns True on success, False on failure.
    """
    errors = validate_config(config)
    if errors:
        print(f"Error: Invalid config {config_path or config.name}:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        return False

    # Without a readable saved session the config's own token applies
    store = load_saved_store(CATALOG, fragment=fragment, storage=storage)

    try:
        runner = Runner(config, config_path=str(config_path) if config_path else None, store=store)
        result = runner.run()
    except (ValueError, KeyError) as e:
        print(f"Error running {config_path or config.name}: {e}", file=sys.stderr)
        return False

    if save_state and storage is not None:
        if not persist_store(result.store, storage) and not quiet:
            print("Warning: could not save dashboard state", file=sys.stderr)

    if stdout:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        if output_path is not None:
            save_result(result, output_path)
        out_dir = output_dir or (Path(config.output_dir) if config.output_dir else None)
        if out_dir is not None:
            OutputWriter(out_dir).write(result, generate_plots=HAS_PLOT)

        if not quiet:
            summary = format_result_summary(result, show_rows=show_rows)
            print(colorize(summary) if use_color else summary)
            if output_path is not None:
                print(f"\nResults saved to: {output_path}")
            if out_dir is not None:
                print(f"\nOutput written to: {out_dir}")

    if share_base_url:
        share_link(result.store, share_base_url, sink=lambda link: print(f"Share link: {link}"))

    if plot:
        if not HAS_PLOT:
            print("Warning: --plot requires matplotlib. Install with: pip install -e '.[plot]'",
                  file=sys.stderr)
        else:
            plot_result(result, save_path=plot_save_path, show=(plot_save_path is None))
            if plot_save_path and not quiet:
                print(f"Plot saved to: {plot_save_path}")

    return True


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Evaluate Klimakur climate-measure selections against national targets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s configs/high_unknown_cost.json --rows
  %(prog)s configs/*.json --output-dir results/
  %(prog)s --token eyJ0IjoiNTUifQ --stdout
  %(prog)s configs/sweep.json --plot --plot-save sweep.png
        """,
    )

    parser.add_argument(
        "configs",
        nargs="*",
        type=Path,
        help="Session config file(s); without any, the default session is evaluated",
    )
    parser.add_argument("--token", default=None, help="Start from a share token")
    parser.add_argument("--url", default=None, help="Start from a share link (#s=<token>)")
    parser.add_argument(
        "--state-file",
        type=Path,
        default=None,
        help="JSON file holding the saved dashboard state (used when no token is given)",
    )
    parser.add_argument(
        "--save-state",
        action="store_true",
        help="Write the resulting state back to --state-file",
    )
    parser.add_argument(
        "--share-url",
        default=None,
        metavar="BASE_URL",
        help="Print a share link for the resulting state",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Save results JSON to this path (only valid with a single config)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Write a results directory (JSON, CSV, summary, plots)",
    )
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print JSON result to stdout instead of the summary",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress summary output",
    )
    parser.add_argument(
        "--rows",
        action="store_true",
        help="Include the filtered and sorted measure table in the summary",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Show or save the main plot (requires matplotlib)",
    )
    parser.add_argument(
        "--plot-save",
        type=Path,
        default=None,
        help="Save plot to file instead of showing it",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.output and len(args.configs) > 1:
        parser.error("--output can only be used with a single config file")
    if args.stdout and args.output:
        parser.error("Cannot use --stdout with --output")
    if args.token and args.url:
        parser.error("Use either --token or --url, not both")
    if args.save_state and args.state_file is None:
        parser.error("--save-state requires --state-file")

    fragment = args.url or (f"s={args.token}" if args.token else None)
    storage = JsonFileStore(args.state_file) if args.state_file else None
    use_color = supports_color() and not args.no_color

    sessions = []
    fail_count = 0
    if not args.configs:
        sessions.append((DashboardConfig(name="default"), None))
    for config_path in args.configs:
        try:
            sessions.append((load_config(config_path), config_path))
        except FileNotFoundError:
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            fail_count += 1
        except ValueError as e:
            # json.JSONDecodeError and json5 errors are ValueErrors
            print(f"Error: Invalid JSON in {config_path}: {e}", file=sys.stderr)
            fail_count += 1

    success_count = 0
    for i, (config, config_path) in enumerate(sessions):
        output_dir = args.output_dir
        if output_dir is not None and len(sessions) > 1:
            output_dir = output_dir / config.name.replace(" ", "_").replace("/", "_")

        success = run_single_config(
            config,
            config_path=config_path,
            fragment=fragment,
            storage=storage,
            save_state=args.save_state,
            share_base_url=args.share_url,
            output_path=args.output,
            output_dir=output_dir,
            stdout=args.stdout,
            quiet=args.quiet,
            show_rows=args.rows,
            use_color=use_color,
            plot=args.plot,
            plot_save_path=args.plot_save,
        )
        if success:
            success_count += 1
        else:
            fail_count += 1

        if len(sessions) > 1 and i < len(sessions) - 1 and not args.stdout and not args.quiet:
            print("\n" + "=" * 60 + "\n")

    if len(args.configs) > 1 and not args.quiet:
        print(f"Completed: {success_count} succeeded, {fail_count} failed")

    return 0 if fail_count == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
