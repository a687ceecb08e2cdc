from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "analysis": {
        "default_tempo_bpm": 120.0,
    },
    "generation": {
        "key": "C",
        "length": 16,
        "style": "classical",
        "instruments": ["violin", "viola", "cello"],
        "progression": ["I", "IV", "V", "I"],
        "seed": None,
    },
    "storage": {
        "path": None,
    },
    "logging": {
        "level": "INFO",
    },
}


def get_default_config() -> dict[str, dict[str, Any]]:
    return deepcopy(DEFAULT_CONFIG)


def _deep_merge_dict(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    out = deepcopy(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge_dict(out[key], value)
        else:
            out[key] = value
    return out


def load_config_file(path: str | Path) -> dict[str, dict[str, Any]]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Config root must be a JSON object.")
    return _deep_merge_dict(get_default_config(), payload)


def load_config(path: str | Path | None) -> dict[str, dict[str, Any]]:
    if path is None:
        return get_default_config()
    return load_config_file(path)


def save_config_file(path: str | Path, config: dict[str, Any]) -> Path:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(config, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return output
