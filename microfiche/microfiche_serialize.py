from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Optional
import collections.abc

import toml
import yaml

from microfiche.microfiche_datatypes import Store, Data, Module, Handler


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str) -> str:
    if isinstance(data, (bytes, bytearray)):
        return data.decode('utf-8', errors='replace')
    if isinstance(data, str):
        return data
    return str(data)


def detect_format(text: str) -> Optional[str]:
    """Sniffs JSON from a leading brace or bracket; other formats need `fmt`."""
    s = text.lstrip()
    if s.startswith('{') or s.startswith('['):
        return 'json'
    return None


def format_from_path(path: str | Path) -> Optional[str]:
    ext = Path(path).suffix.lower()
    return {".json": "json", ".yaml": "yaml", ".yml": "yaml", ".toml": "toml"}.get(ext)


# --------------------------
# Store conversion
# --------------------------

def store_to_dict(store: Store) -> dict:
    """Nested plain dict of the store's data; handlers are left out."""
    out = {}
    for name, binding in store.items():
        match binding:
            case Data(payload=payload):
                out[name] = payload
            case Module(store=inner):
                out[name] = store_to_dict(inner)
            case Handler():
                continue
    return out


def store_from_dict(mapping: collections.abc.Mapping, store: Optional[Store] = None) -> Store:
    """Binds mapping entries into `store`: mappings become modules, everything else data."""
    store = store if store is not None else Store()
    for key, value in mapping.items():
        if isinstance(value, collections.abc.Mapping):
            store[str(key)] = store_from_dict(value)
        elif value is None:
            store[str(key)] = ""
        else:
            store[str(key)] = value if isinstance(value, str) else json.dumps(value)
    return store


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str,
                *,
                fmt: Optional[str] = None) -> Any:
    """
    Convert file data (bytes/string, UTF-8) to native Python structures.
    Supported fmt: 'json', 'yaml', 'toml'.
    If fmt is None, JSON is sniffed. Unknown formats come back as text.
    """
    text = _norm_text(data)
    f = (fmt or detect_format(text))
    if f == 'json':
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # Declared JSON that is really YAML still loads; YAML is a superset
            return yaml.safe_load(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    if f == 'toml':
        return tomllib.loads(text)
    return text


def serialize(value: Any,
              *,
              fmt: str,
              pretty: bool = True) -> str:
    """
    Convert a native value or a Store into text.
    - fmt: 'json' | 'yaml' | 'toml'
    """
    f = (fmt or '').lower()
    built = store_to_dict(value) if isinstance(value, Store) else value
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    if f == 'toml':
        return toml.dumps(built)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def load_data_file(path: str | Path, store: Optional[Store] = None) -> Store:
    """Reads a json/yaml/toml file and binds its top-level mapping into a store."""
    p = Path(path)
    fmt = format_from_path(p)
    if fmt is None:
        raise ValueError(f"Cannot tell the format of {p.name!r}; use .json, .yaml, .yml or .toml")
    value = deserialize(p.read_bytes(), fmt=fmt)
    if value is None:
        value = {}
    if not isinstance(value, collections.abc.Mapping):
        raise ValueError(f"{p.name}: top level must be a mapping, not {type(value).__name__}")
    return store_from_dict(value, store)


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
    "format_from_path",
    "store_to_dict",
    "store_from_dict",
    "load_data_file",
]
