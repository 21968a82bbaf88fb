"""
Text building blocks for the terminal summary.

The primitives below produce uncoloured text (box-drawing borders, dot
leaders, progress bars); colorize() adds ANSI codes afterwards when the
terminal supports them. Numbers are written the Norwegian way: a space
groups thousands and a comma marks decimals.
"""

import math
import os
import re
import sys
from typing import Any, List, Optional, Sequence, Tuple


def supports_color() -> bool:
    """True when stdout is a terminal, unless NO_COLOR or FORCE_COLOR say otherwise."""
    if 'NO_COLOR' in os.environ:
        return False
    if 'FORCE_COLOR' in os.environ:
        return True
    isatty = getattr(sys.stdout, 'isatty', None)
    return bool(isatty and isatty())


# ── Number formatting ───────────────────────────────────────────────

_THOUSANDS_SEP = ' '


def fmt_number(value: Optional[float], decimals: int = 0) -> str:
    """Format a number the Norwegian way.

    Example::

        fmt_number(12345.678, 1)  ->  '12 345,7'
    """
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        return 'N/A'
    text = f"{value:,.{decimals}f}"
    return text.replace(',', _THOUSANDS_SEP).replace('.', ',')


def fmt_mt(value: float) -> str:
    """Potential or emission level in Mt CO2e."""
    return f"{fmt_number(value, 2)} Mt"


def fmt_bn_nok(value: float) -> str:
    """Total cost in billion NOK."""
    return f"{fmt_number(value, 2)} mrd kr"


def fmt_unit_cost(value: float) -> str:
    """Unit cost in NOK per tonne."""
    return f"{fmt_number(value)} kr/t"


def fmt_pct(value: float, decimals: int = 1) -> str:
    return f"{fmt_number(value, decimals)} %"


# ── Glyphs ──────────────────────────────────────────────────────────

_HEAVY_H = '═'
_LIGHT_H = '─'
_VL = '│'

# Corner and junction glyphs per table rule: (left, middle, right)
_TOP = ('┌', '┬', '┐')
_MID = ('├', '┼', '┤')
_BOTTOM = ('└', '┴', '┘')
_TL, _LJ, _BL = _TOP[0], _MID[0], _BOTTOM[0]

_BAR_FULL = '█'
_BAR_REF = '▓'
_BAR_EMPTY = '░'

_JUSTIFY = {'l': str.ljust, 'r': str.rjust, 'c': str.center}


# ── Blocks ──────────────────────────────────────────────────────────

def title(text: str, width: int = 60) -> str:
    """Centred title between heavy rules, padded to ``width``.

    Example::

        ═══════════════ Klimakur ═══════════════
    """
    fill = max(width - len(text) - 2, 4)
    return f"{_HEAVY_H * (fill // 2)} {text} {_HEAVY_H * (fill - fill // 2)}"


def heading(text: str) -> str:
    return f"  {text}\n  {_LIGHT_H * len(text)}"


def kv_block(items: Sequence[Tuple[str, str]], indent: int = 2) -> str:
    """Label/value lines whose values line up behind dot leaders.

    Example::

        Target ·········· 70 % kutt innen 2035
        Selected ········ 61 of 63 measures
    """
    if not items:
        return ""
    column = max(len(label) for label, _ in items) + 2
    return "\n".join(
        f"{' ' * indent}{label} {'·' * (column - len(label))} {value}"
        for label, value in items
    )


def table(
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    aligns: Optional[Sequence[str]] = None,
) -> str:
    """Bordered table; short rows are padded with empty cells.

    ``aligns`` holds one of 'l', 'r' or 'c' per column (left by default).
    """
    if not headers:
        return ""

    n = len(headers)
    aligns = list(aligns or []) + ['l'] * (n - len(aligns or []))
    grid = [[str(h) for h in headers]]
    grid += [[str(c) for c in row[:n]] + [''] * (n - len(row[:n])) for row in rows]
    widths = [max(len(r[i]) for r in grid) for i in range(n)]

    def line(cells: List[str]) -> str:
        parts = (_JUSTIFY[a](c, w) for c, a, w in zip(cells, aligns, widths))
        return _VL + _VL.join(f" {p} " for p in parts) + _VL

    def rule(glyphs: Tuple[str, str, str]) -> str:
        left, mid, right = glyphs
        return left + mid.join(_LIGHT_H * (w + 2) for w in widths) + right

    out = [rule(_TOP), line(grid[0]), rule(_MID)]
    out += [line(r) for r in grid[1:]]
    out.append(rule(_BOTTOM))
    return "\n".join(out)


def progress_bar(percent: float, width: int = 40, reference_percent: Optional[float] = None) -> str:
    """Horizontal bar for a percentage clamped to [0, 100].

    The optional reference share is drawn first with a lighter fill.

    Example::

        [▓▓▓▓▓▓▓▓▓▓████░░░░░░]  71,2 %
    """
    percent = max(0.0, min(100.0, percent))
    filled = int(round(width * percent / 100))
    ref = 0
    if reference_percent is not None:
        ref = min(filled, int(round(width * max(0.0, min(100.0, reference_percent)) / 100)))
    bar = _BAR_REF * ref + _BAR_FULL * (filled - ref) + _BAR_EMPTY * (width - filled)
    return f"[{bar}] {fmt_pct(percent):>8}"


def info_line(text: str, indent: int = 2) -> str:
    """Indented informational text with diamond marker."""
    return f"{' ' * indent}◆ {text}"


def badge(label: str, value: str, indent: int = 2) -> str:
    """Highlighted key result with arrow marker.

    Example::

        ▸ Gap to target: 6,40 Mt
    """
    return f"{' ' * indent}▸ {label}: {value}"


def warning_line(text: str, indent: int = 2) -> str:
    """Advisory line with warning marker."""
    return f"{' ' * indent}⚠ {text}"


def note_block(lines_list: Sequence[str], indent: int = 2) -> str:
    """Indented note section with dot markers."""
    prefix = ' ' * indent
    return "\n".join(f"{prefix}· {line}" for line in lines_list)


# ── Colour ──────────────────────────────────────────────────────────

_ANSI = {
    'reset': '\033[0m',
    'bold': '\033[1m',
    'dim': '\033[2m',
    'red': '\033[31m',
    'green': '\033[32m',
    'yellow': '\033[33m',
    'cyan': '\033[36m',
}


def _paint(text: str, *styles: str) -> str:
    return ''.join(_ANSI[s] for s in styles) + text + _ANSI['reset']


# Table cells recoloured by exact content
_CELL_STYLES = {
    'Yes': ('green',),
    'No': ('red',),
    'N/A': ('dim', 'yellow'),
}

_MARKERS = ('◆', '▸')


def colorize(text: str) -> str:
    """Add ANSI colour to text built from the primitives above.

    Works line by line on the glyphs each primitive emits, so callers can
    build plain text first and colour it only for a terminal.
    """
    return '\n'.join(_colorize_line(line) for line in text.split('\n'))


def _colorize_line(line: str) -> str:
    body = line.strip()
    if not body:
        return line

    if _VL in line:
        border = _paint(_VL, 'dim')
        return border.join(_colorize_cell(part) for part in line.split(_VL))
    if _HEAVY_H in line:
        return _paint(line, 'bold', 'cyan')
    if set(body) == {_LIGHT_H} or body[0] in (_TL, _BL, _LJ, '·'):
        return _paint(line, 'dim')
    if '⚠' in line:
        return _paint(line, 'yellow')
    if _BAR_FULL in line or _BAR_REF in line:
        line = line.replace(_BAR_REF, _paint(_BAR_REF, 'cyan'))
        return re.sub(f"{_BAR_FULL}+", lambda m: _paint(m.group(0), 'green'), line)
    for marker in _MARKERS:
        if marker in line:
            return line.replace(marker, _paint(marker, 'yellow'))
    return line


def _colorize_cell(cell: str) -> str:
    styles = _CELL_STYLES.get(cell.strip())
    if styles is None:
        return cell
    return cell.replace(cell.strip(), _paint(cell.strip(), *styles))
