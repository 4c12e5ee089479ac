"""Configuration loading helpers for Vinted-Crawler."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .models import CrawlInput, GlobalConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
GLOBAL_CONFIG_FILENAME = "global_config.yaml"
HOME_ENV_VAR = "VINTED_CRAWLER_HOME"


def crawler_home() -> Path:
    """Root for data and logs: $VINTED_CRAWLER_HOME, else the working directory."""

    env_root = os.environ.get(HOME_ENV_VAR)
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path.cwd().resolve()


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def _format_validation_error(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "input"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def parse_crawl_input(payload: dict[str, Any] | CrawlInput | None) -> CrawlInput:
    """Validate raw input, surfacing schema problems as :class:`ValidationError`."""

    if isinstance(payload, CrawlInput):
        return payload
    try:
        return CrawlInput.model_validate(payload or {})
    except PydanticValidationError as exc:
        raise ValidationError(_format_validation_error(exc)) from exc


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    inputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        if os.environ.get(HOME_ENV_VAR) or self.project_root is None:
            root = crawler_home()
        else:
            root = self.project_root.resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.inputs_dir = (self.data_dir / "inputs").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.outputs_dir, self.inputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global_cache: GlobalConfig | None = None

    # ------------------------------------------------------------------
    # Global configuration helpers
    # ------------------------------------------------------------------
    def load_global_config(self) -> GlobalConfig:
        if self._global_cache is not None:
            return self._global_cache
        path = self.locator.global_config_path()
        if path.exists():
            payload = _read_file(path)
            global_cfg = GlobalConfig.model_validate(payload)
        else:
            global_cfg = GlobalConfig(outputs_dir=self.locator.outputs_dir)
            self.save_global_config(global_cfg)
        relative: dict[str, Path] = {}
        for name in ("outputs_dir", "proxy_file"):
            value = getattr(global_cfg, name)
            if value is not None and not value.is_absolute():
                relative[name] = (self.locator.project_root / value).resolve()
        if relative:
            global_cfg = global_cfg.model_copy(update=relative)
        self._global_cache = global_cfg
        return global_cfg

    def save_global_config(self, config: GlobalConfig) -> None:
        path = self.locator.global_config_path()
        payload = config.model_dump(mode="json")
        _write_file(path, payload)
        self._global_cache = config

    # ------------------------------------------------------------------
    # Crawl input helpers
    # ------------------------------------------------------------------
    def input_path(self, identifier: str | Path) -> Path:
        if isinstance(identifier, Path):
            return identifier
        candidate = Path(identifier)
        if candidate.suffix in CONFIG_EXTENSIONS and candidate.exists():
            return candidate
        for suffix in CONFIG_EXTENSIONS:
            path = self.locator.inputs_dir / f"{identifier}{suffix}"
            if path.exists():
                return path
        return candidate

    def load_input(self, identifier: str | Path) -> CrawlInput:
        path = self.input_path(identifier)
        if not path.exists():
            raise FileNotFoundError(f"Crawl input not found: {identifier}")
        return parse_crawl_input(_read_file(path))


__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "CONFIG_EXTENSIONS",
    "HOME_ENV_VAR",
    "crawler_home",
    "parse_crawl_input",
]
