import os
from typing import Dict, Optional

import pandas as pd
import streamlit as st

from site_analytics.config import get_settings
from site_analytics.data.schema import COLLECTIONS, RecordSnapshot, normalize_records
from site_analytics.exceptions import SnapshotLoadError
from site_analytics.utils.logger import get_logger

logger = get_logger(__name__)

# Collections the dashboard cannot work without
REQUIRED_COLLECTIONS = ("projects",)


def _collection_path(data_dir: str, kind: str) -> Optional[str]:
    for ext in (".csv", ".json"):
        path = os.path.join(data_dir, f"{kind}{ext}")
        if os.path.exists(path):
            return path
    return None


def _read_collection(path: str) -> pd.DataFrame:
    try:
        if path.endswith(".csv"):
            # ids stay as text; sentinels are handled during normalization
            return pd.read_csv(path, dtype=str, keep_default_na=False)
        return pd.read_json(path, orient="records", dtype=False)
    except (OSError, ValueError) as exc:
        raise SnapshotLoadError(path, str(exc)) from exc


def read_snapshot(data_dir: str) -> RecordSnapshot:
    """Read every collection found under ``data_dir`` into a normalized snapshot."""
    if not os.path.isdir(data_dir):
        raise SnapshotLoadError(data_dir, "data directory does not exist")

    frames: Dict[str, pd.DataFrame] = {}
    missing = []
    for kind in COLLECTIONS:
        path = _collection_path(data_dir, kind)
        if path is None:
            if kind in REQUIRED_COLLECTIONS:
                raise SnapshotLoadError(os.path.join(data_dir, f"{kind}.csv"), "required collection is missing")
            missing.append(kind)
            frames[kind] = normalize_records(None, kind)
            continue
        frames[kind] = normalize_records(_read_collection(path), kind)

    snapshot = RecordSnapshot(**frames)
    if missing:
        logger.info("Collections not found in %s, treated as empty: %s", data_dir, ", ".join(missing))

    diagnostics = {
        "data_dir": data_dir,
        "row_counts": snapshot.row_counts(),
        "missing_collections": missing,
        "sentinel_replacements": {
            kind: frames[kind].attrs["sentinel_replacements"]
            for kind in COLLECTIONS
            if frames[kind].attrs.get("sentinel_replacements")
        },
    }
    logger.info("Loaded snapshot from %s: %s", data_dir, diagnostics["row_counts"])
    try:
        st.session_state["data_diagnostics"] = diagnostics
    except Exception:
        # no Streamlit session when called outside `streamlit run`
        pass
    return snapshot


def load_data() -> RecordSnapshot:
    """Wrapper that resolves config and calls the cached implementation."""
    from site_analytics.bootstrap_env import ensure_env

    ensure_env()
    return _load_data_impl(get_settings().data_dir)


@st.cache_data(show_spinner=False, ttl=600)
def _load_data_impl(data_dir: str) -> RecordSnapshot:
    """Cached by data_dir."""
    return read_snapshot(data_dir)


# Streamlit caches the inner function; expose its clear() on the wrapper
load_data.clear = _load_data_impl.clear  # type: ignore[attr-defined]
