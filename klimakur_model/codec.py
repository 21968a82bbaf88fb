"""
Compact share token for a ParameterStore.

The token is base64url (no padding) of a compact JSON object holding only
the fields that differ from ParameterStore.default(catalog). The same token
is used in URL fragments and in the key-value store.

Keys:
    o   cost overrides, {catalog index of first row with the title: NOK/t}
    k   repriced cost ranges, {range label: NOK/t}
    d   default cost for measures with unknown cost
    t   target scenario key
    x   excluded catalog indices (selection = everything else)
    c   category filter
    f   cost-type filter
    q   search text
    s   sort column
    r   sort direction

Decoding never raises: an unreadable token yields {} and unusable fields are
dropped one by one.
"""

from dataclasses import replace
from typing import Any, Dict, Optional, Sequence
import base64
import binascii
import json
import logging
import math

from .catalog import (
    CATALOG,
    CATEGORIES,
    RANGE_LABEL_COSTS,
    TARGET_SCENARIOS,
    UNKNOWN_RANGE_LABEL,
    MeasureRecord,
)
from .store import (
    ALL_CATEGORIES,
    COST_TYPES,
    SORT_COLUMNS,
    SORT_DIRECTIONS,
    ParameterStore,
)

logger = logging.getLogger(__name__)


def _first_index_by_title(catalog: Sequence[MeasureRecord]) -> Dict[str, int]:
    index = {}
    for i, m in enumerate(catalog):
        index.setdefault(m.title, i)
    return index


def to_compact(store: ParameterStore, catalog: Sequence[MeasureRecord] = CATALOG) -> Dict[str, Any]:
    """Compact dict of the store's non-default fields."""
    default = ParameterStore.default(catalog)
    data: Dict[str, Any] = {}

    first_index = _first_index_by_title(catalog)
    overrides = {}
    for title, cost in store.cost_overrides.items():
        # Stale titles have no index and are dropped
        if title in first_index:
            overrides[str(first_index[title])] = _compact_number(cost)
    if overrides:
        data["o"] = dict(sorted(overrides.items(), key=lambda kv: int(kv[0])))

    range_costs = {label: _compact_number(cost) for label, cost in store.range_costs.items()
                   if label in RANGE_LABEL_COSTS and label != UNKNOWN_RANGE_LABEL}
    if range_costs:
        data["k"] = dict(sorted(range_costs.items()))

    if store.default_unknown_cost != default.default_unknown_cost:
        data["d"] = _compact_number(store.default_unknown_cost)
    if store.selected_target != default.selected_target:
        data["t"] = store.selected_target

    excluded = [i for i, m in enumerate(catalog) if m.title not in store.selection]
    if excluded:
        data["x"] = excluded

    if store.filter_category != default.filter_category:
        data["c"] = store.filter_category
    if store.filter_cost_type != default.filter_cost_type:
        data["f"] = store.filter_cost_type
    if store.search_text != default.search_text:
        data["q"] = store.search_text
    if store.sort_column != default.sort_column:
        data["s"] = store.sort_column
    if store.sort_direction != default.sort_direction:
        data["r"] = store.sort_direction
    return data


def _compact_number(value: float):
    return int(value) if float(value).is_integer() else value


def encode(store: ParameterStore, catalog: Sequence[MeasureRecord] = CATALOG) -> str:
    """
    Encode a store as a share token.

    The default store encodes to the empty string.
    """
    data = to_compact(store, catalog)
    if not data:
        return ""
    raw = json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _as_cost(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def _as_index(value, size: int) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        index = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    return index if 0 <= index < size else None


def from_compact(data: Any, catalog: Sequence[MeasureRecord] = CATALOG) -> Dict[str, Any]:
    """
    Translate a compact dict into ParameterStore field values.

    Unknown keys and invalid values are ignored.
    """
    if not isinstance(data, dict):
        return {}
    fields: Dict[str, Any] = {}
    size = len(catalog)

    overrides = data.get("o")
    if isinstance(overrides, dict):
        decoded = {}
        for key, value in overrides.items():
            index = _as_index(key, size)
            cost = _as_cost(value)
            if index is not None and cost is not None:
                decoded[catalog[index].title] = cost
        if decoded:
            fields["cost_overrides"] = decoded

    range_costs = data.get("k")
    if isinstance(range_costs, dict):
        decoded = {}
        for label, value in range_costs.items():
            cost = _as_cost(value)
            if label in RANGE_LABEL_COSTS and label != UNKNOWN_RANGE_LABEL and cost is not None:
                decoded[label] = cost
        if decoded:
            fields["range_costs"] = decoded

    cost = _as_cost(data.get("d"))
    if cost is not None:
        fields["default_unknown_cost"] = cost

    if isinstance(data.get("t"), str) and data["t"] in TARGET_SCENARIOS:
        fields["selected_target"] = data["t"]

    excluded = data.get("x")
    if isinstance(excluded, list):
        titles = set()
        for value in excluded:
            index = _as_index(value, size)
            if index is not None:
                titles.add(catalog[index].title)
        all_titles = {m.title for m in catalog}
        fields["selection"] = frozenset(all_titles - titles)

    category = data.get("c")
    if category == ALL_CATEGORIES or category in CATEGORIES:
        fields["filter_category"] = category
    if data.get("f") in COST_TYPES:
        fields["filter_cost_type"] = data["f"]
    if isinstance(data.get("q"), str):
        fields["search_text"] = data["q"]
    if data.get("s") in SORT_COLUMNS:
        fields["sort_column"] = data["s"]
    if data.get("r") in SORT_DIRECTIONS:
        fields["sort_direction"] = data["r"]
    return fields


def decode(token: Optional[str], catalog: Sequence[MeasureRecord] = CATALOG) -> Dict[str, Any]:
    """
    Decode a share token into a partial set of ParameterStore fields.

    Returns {} for empty, malformed or unparseable tokens.
    """
    if not token or not isinstance(token, str):
        return {}
    token = token.strip()
    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        logger.debug("Ignoring unreadable state token %r: %s", token[:40], e)
        return {}
    try:
        return from_compact(data, catalog)
    except (TypeError, ValueError, OverflowError) as e:
        logger.debug("Ignoring malformed state token %r: %s", token[:40], e)
        return {}


def restore(token: Optional[str], catalog: Sequence[MeasureRecord] = CATALOG) -> ParameterStore:
    """Default store with the token's fields applied."""
    return replace(ParameterStore.default(catalog), **decode(token, catalog))
