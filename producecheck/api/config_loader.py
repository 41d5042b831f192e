"""Application configuration loaded from a JSON file.

Every section is optional; missing or malformed values keep their
defaults so a partial file is always usable.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

from ..history.store import SNAPSHOT_KEY
from .quality_gate import (
    DEFAULT_MAX_BLUR,
    DEFAULT_MIN_BRIGHTNESS,
    DEFAULT_MIN_HEIGHT,
    DEFAULT_MIN_WIDTH,
)
from .service import DEFAULT_CONFIDENCE_THRESHOLD

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class StorageSettings:
    state_dir: Path = Path("data/state")
    snapshot_key: str = SNAPSHOT_KEY


@dataclass
class ClassifierSettings:
    labels_path: Path | None = None
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    seed: int | None = None
    noise_amplitude: float = 0.05


@dataclass
class QualityGateSettings:
    min_width: int = DEFAULT_MIN_WIDTH
    min_height: int = DEFAULT_MIN_HEIGHT
    min_brightness: float = DEFAULT_MIN_BRIGHTNESS
    max_blur: float = DEFAULT_MAX_BLUR


@dataclass
class AppConfig:
    server: ServerSettings = field(default_factory=ServerSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    classifier: ClassifierSettings = field(default_factory=ClassifierSettings)
    quality_gate: QualityGateSettings = field(default_factory=QualityGateSettings)


def load_config(path: str | Path | None) -> AppConfig:
    """Load configuration from ``path``; ``None`` yields the defaults.

    Raises:
        FileNotFoundError: if ``path`` is given but does not exist.
        ValueError: if the file is not a JSON object.
    """
    if path is None:
        return AppConfig()
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Configuration file {config_path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {config_path} must contain a JSON object")
    config = _parse_config(data)
    logger.info("Loaded configuration from %s", config_path)
    return config


def _parse_config(data: dict[str, Any]) -> AppConfig:
    server = _section(data, "server")
    storage = _section(data, "storage")
    classifier = _section(data, "classifier")
    gate = _section(data, "quality_gate")
    defaults = AppConfig()

    labels_path = classifier.get("labels_path")
    seed = classifier.get("seed")
    return AppConfig(
        server=ServerSettings(
            host=_coerce(server.get("host"), str, defaults.server.host),
            port=_coerce(server.get("port"), int, defaults.server.port),
        ),
        storage=StorageSettings(
            state_dir=_coerce(storage.get("state_dir"), Path, defaults.storage.state_dir),
            snapshot_key=_coerce(storage.get("snapshot_key"), str, defaults.storage.snapshot_key),
        ),
        classifier=ClassifierSettings(
            labels_path=Path(labels_path) if isinstance(labels_path, str) and labels_path else None,
            confidence_threshold=_coerce(
                classifier.get("confidence_threshold"),
                float,
                defaults.classifier.confidence_threshold,
            ),
            seed=seed if isinstance(seed, int) and not isinstance(seed, bool) else None,
            noise_amplitude=_coerce(
                classifier.get("noise_amplitude"), float, defaults.classifier.noise_amplitude
            ),
        ),
        quality_gate=QualityGateSettings(
            min_width=_coerce(gate.get("min_width"), int, defaults.quality_gate.min_width),
            min_height=_coerce(gate.get("min_height"), int, defaults.quality_gate.min_height),
            min_brightness=_coerce(
                gate.get("min_brightness"), float, defaults.quality_gate.min_brightness
            ),
            max_blur=_coerce(gate.get("max_blur"), float, defaults.quality_gate.max_blur),
        ),
    )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def _coerce(value: Any, convert: Callable[[Any], T], default: T) -> T:
    if value is None or isinstance(value, bool):
        return default
    try:
        return convert(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid configuration value %r", value)
        return default


__all__ = [
    "AppConfig",
    "ClassifierSettings",
    "QualityGateSettings",
    "ServerSettings",
    "StorageSettings",
    "load_config",
]
