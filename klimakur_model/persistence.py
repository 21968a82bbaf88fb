"""
Persistence and link-sharing adapters.

The dashboard state travels as a share token (see codec) through two
channels: a URL fragment ("#s=<token>"), which wins on load, and a key-value
store, which is the fallback on load and is written through on every change.
Failures in either channel never reach the caller: they are logged and the
default state is used instead.
"""

from pathlib import Path
from typing import Callable, Optional, Sequence, Union
from urllib.parse import parse_qs, urlsplit, urlunsplit
import json
import logging

from .catalog import CATALOG, MeasureRecord
from .codec import decode, encode, restore
from .store import ParameterStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "klimakur-dashboard-state"
FRAGMENT_KEY = "s"


class JsonFileStore:
    """
    Minimal key-value store backed by one JSON object on disk.

    get() returns None for a missing file, a missing key or a corrupt file.
    set() raises OSError when the file cannot be written.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read state file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)


def parse_fragment(value: Optional[str]) -> Optional[str]:
    """
    Extract the state token from a URL or a bare fragment.

    Accepts "https://host/page#s=TOKEN", "#s=TOKEN" and "s=TOKEN".
    Returns None when no token is present.
    """
    if not value:
        return None
    if "#" in value:
        fragment = value.split("#", 1)[1]
    else:
        fragment = value
    params = parse_qs(fragment, keep_blank_values=False)
    tokens = params.get(FRAGMENT_KEY)
    if not tokens:
        return None
    return tokens[0] or None


def load_saved_store(
    catalog: Sequence[MeasureRecord] = CATALOG,
    fragment: Optional[str] = None,
    storage=None,
) -> Optional[ParameterStore]:
    """
    Restore a saved session, if there is one.

    Priority: a readable URL-fragment token, then the stored token. Returns
    None when neither channel holds a readable token.
    """
    token = parse_fragment(fragment)
    if token and decode(token, catalog):
        logger.debug("Restoring state from URL fragment")
        return restore(token, catalog)

    if storage is not None:
        try:
            stored = storage.get(STORAGE_KEY)
        except (OSError, ValueError, TypeError) as e:
            logger.warning("State storage unavailable: %s", e)
            stored = None
        if stored and decode(stored, catalog):
            logger.debug("Restoring state from storage")
            return restore(stored, catalog)

    return None


def load_initial_store(
    catalog: Sequence[MeasureRecord] = CATALOG,
    fragment: Optional[str] = None,
    storage=None,
) -> ParameterStore:
    """Session starting store: the saved session, or the default store."""
    store = load_saved_store(catalog, fragment=fragment, storage=storage)
    return store if store is not None else ParameterStore.default(catalog)


def persist_store(
    store: ParameterStore,
    storage,
    catalog: Sequence[MeasureRecord] = CATALOG,
) -> bool:
    """
    Write the store's token through to storage.

    Returns False (and logs) on failure; never raises.
    """
    try:
        storage.set(STORAGE_KEY, encode(store, catalog))
    except (OSError, ValueError, TypeError) as e:
        logger.warning("Could not persist dashboard state: %s", e)
        return False
    return True


def build_share_link(
    store: ParameterStore,
    base_url: str,
    catalog: Sequence[MeasureRecord] = CATALOG,
) -> str:
    """Full address with the state token in the fragment."""
    parts = urlsplit(base_url)
    token = encode(store, catalog)
    fragment = f"{FRAGMENT_KEY}={token}" if token else ""
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, fragment))


def share_link(
    store: ParameterStore,
    base_url: str,
    sink: Callable[[str], None],
    catalog: Sequence[MeasureRecord] = CATALOG,
) -> bool:
    """
    Hand the share link to a clipboard-like sink.

    Returns True on success, False if the sink failed.
    """
    link = build_share_link(store, base_url, catalog)
    try:
        sink(link)
    except Exception as e:
        logger.warning("Could not share link: %s", e)
        return False
    return True
