"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from models import MatchWeights, RecoveryPolicy

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "fitvoice"

DEFAULTS = {
    "api_key": "",
    "hotkey": "Key.f9",
    "lang": "en-US",
    "inactivity_timeout_ms": 5000,
    "log_level": "INFO",
}


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_CONFIG_DIR / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._path.parent

    def get_api_key(self) -> str:
        return str(self._get("api_key"))

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key)

    def get_hotkey(self) -> str:
        return str(self._get("hotkey"))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def get_lang(self) -> str:
        return str(self._get("lang"))

    def get_log_level(self) -> str:
        return str(self._get("log_level")).upper()

    def get_inactivity_timeout_ms(self) -> int:
        value = self._get("inactivity_timeout_ms")
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
        return int(DEFAULTS["inactivity_timeout_ms"])

    def get_recovery_policy(self) -> RecoveryPolicy:
        data = self._read_all()
        default = RecoveryPolicy()
        try:
            max_attempts = int(data.get("max_recovery_attempts", default.max_attempts))
            backoff = tuple(int(v) for v in data.get("recovery_backoff_ms", default.backoff_ms))
            spacing = int(data.get("min_recovery_spacing_ms", default.min_spacing_ms))
        except (TypeError, ValueError):
            logger.warning("Invalid recovery settings in {}, using defaults", self._path)
            return default
        if max_attempts < 0 or spacing < 0 or not backoff or any(v < 0 for v in backoff):
            logger.warning("Out-of-range recovery settings in {}, using defaults", self._path)
            return default
        return RecoveryPolicy(max_attempts=max_attempts, backoff_ms=backoff, min_spacing_ms=spacing)

    def get_match_weights(self) -> MatchWeights:
        data = self._read_all()
        default = MatchWeights()
        try:
            weights = MatchWeights(
                threshold=float(data.get("select_threshold", default.threshold)),
                contains=float(data.get("select_contains_weight", default.contains)),
                contained=float(data.get("select_contained_weight", default.contained)),
            )
        except (TypeError, ValueError):
            logger.warning("Invalid select matching settings in {}, using defaults", self._path)
            return default
        if not all(0.0 <= v <= 1.0 for v in (weights.threshold, weights.contains, weights.contained)):
            return default
        return weights

    def _get(self, key: str) -> object:
        return self._read_all().get(key, DEFAULTS[key])

    def _set(self, key: str, value: object) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
