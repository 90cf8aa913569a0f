"""
Environment bootstrap for the site analytics dashboard.

Sources, highest priority first:
- variables already set in the process environment
- st.secrets (a ``[site_analytics]`` table maps to bare names, other tables
  flatten to ``TABLE_KEY``)
- a local .env file
- DEFAULTS below
"""

from __future__ import annotations

import os
import re
from typing import Dict, Iterator, Mapping, Tuple

import streamlit as st
from dotenv import load_dotenv

SECRETS_SECTION = "site_analytics"

DEFAULTS: Dict[str, str] = {
    "DATA_DIR": "data",
    "LOG_LEVEL": "INFO",
    "DEFAULT_DATE_PRESET": "30d",
}


def _env_name(*parts: str) -> str:
    joined = "_".join(p for p in parts if p)
    return re.sub(r"[^A-Za-z0-9_]", "_", joined.upper())


def _walk(prefix: str, value) -> Iterator[Tuple[str, str]]:
    if isinstance(value, Mapping):
        for key, child in value.items():
            yield from _walk(_env_name(prefix, str(key)), child)
    else:
        yield prefix, str(value)


def _read_secrets() -> Dict[str, object]:
    try:
        secrets = getattr(st, "secrets", None)
        if not secrets:
            return {}
        return secrets.to_dict()  # type: ignore[attr-defined]
    except Exception:
        # st.secrets raises when no secrets.toml exists
        return {}


def _bridge_secrets_to_env() -> None:
    for key, value in _read_secrets().items():
        prefix = "" if key == SECRETS_SECTION else _env_name(key)
        for name, flat in _walk(prefix, value):
            if name:
                os.environ.setdefault(name, flat)


def _apply_defaults() -> None:
    for name, value in DEFAULTS.items():
        os.environ.setdefault(name, value)


def ensure_env() -> None:
    """Idempotent; safe inside and outside the Streamlit runtime."""
    _bridge_secrets_to_env()
    # load_dotenv never overrides what is already set
    load_dotenv()
    _apply_defaults()


ensure_env()
