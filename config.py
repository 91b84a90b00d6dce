"""
config.py

Versioned JSON settings files:

    {
      "version": 1,
      "settings": {
        "file_name": "site-plan",
        "page_formats": ["a3", "a4"],
        "print_formats": [{"label": "pdf", "disabled": false}],
        "facing_images": {"N": "icons/north.png"},
        "facing_data_key": "facing",
        "logo_url": "logo.png",
        ...
      }
    }

Relative image paths are resolved against the settings file's folder.
Callbacks (on_error, on_state_change) are never stored.
"""

from __future__ import annotations

import json
import os
from dataclasses import fields
from typing import Any, Dict, Optional

from models import ExportSettings

SETTINGS_FILE_VERSION = 1

_CALLBACK_FIELDS = {"on_error", "on_state_change"}
_URL_PREFIXES = ("http://", "https://", "data:", "file:")


def _resolve_ref(value: Any, base_dir: str) -> Any:
    if not isinstance(value, str) or not value:
        return value
    if value.startswith(_URL_PREFIXES) or os.path.isabs(value):
        return value
    return os.path.normpath(os.path.join(base_dir, value))


def settings_from_dict(data: dict, base_dir: str = "", **overrides: Any) -> ExportSettings:
    if not isinstance(data, dict):
        raise ValueError("Settings root must be a JSON object.")

    version = int(data.get("version", 0))
    if version != SETTINGS_FILE_VERSION:
        raise ValueError(f"Unsupported settings version: {version} (expected {SETTINGS_FILE_VERSION})")

    raw = data.get("settings", {})
    if not isinstance(raw, dict):
        raise ValueError("'settings' must be a JSON object.")

    known = {f.name for f in fields(ExportSettings)} - _CALLBACK_FIELDS
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")

    kwargs: Dict[str, Any] = dict(raw)

    facing = kwargs.get("facing_images")
    if facing is not None:
        if not isinstance(facing, dict):
            raise ValueError("'facing_images' must be an object of direction -> image.")
        kwargs["facing_images"] = {str(k): _resolve_ref(v, base_dir) for k, v in facing.items()}
    if "logo_url" in kwargs:
        kwargs["logo_url"] = _resolve_ref(kwargs["logo_url"], base_dir)
    if "output_dir" in kwargs:
        kwargs["output_dir"] = _resolve_ref(kwargs["output_dir"], base_dir)

    kwargs.update(overrides)
    return ExportSettings(**kwargs)


def load_settings(path: str, **overrides: Any) -> ExportSettings:
    """Read a settings file. overrides (e.g. on_error) are applied on top."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return settings_from_dict(data, base_dir=os.path.dirname(os.path.abspath(path)), **overrides)


def settings_to_dict(settings: ExportSettings) -> dict:
    out: Dict[str, Any] = {}
    for f in fields(ExportSettings):
        if f.name in _CALLBACK_FIELDS:
            continue
        value = getattr(settings, f.name)
        if f.name == "print_formats":
            value = [{"label": o.label, "disabled": o.disabled} for o in value]
        elif f.name == "facing_images":
            value = {k: v for k, v in value.items() if isinstance(v, str)}
        out[f.name] = value
    return {"version": SETTINGS_FILE_VERSION, "settings": out}


def save_settings(settings: ExportSettings, path: str) -> None:
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings_to_dict(settings), f, indent=2, ensure_ascii=False)


def load_data(path: Optional[str]) -> Dict[str, Any]:
    """Caller data (title block fields, notes, facing code) from a JSON object file."""
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Data file root must be a JSON object.")
    return data
