"""Load settings.yaml into typed dataclasses. Detects configured API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"
_SETTINGS_ENV = "VOID_RADIO_SETTINGS"


@dataclass
class ModelConfig:
    name: str
    label: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: float = 30.0
    max_tokens: int = 1200
    expected_sec: float = 8.0  # assumed call duration, drives the progress estimate
    base_url: str | None = None
    api_key_fallback_env: str | None = None

    def api_key(self) -> str:
        """Return the configured secret, or "" when neither env var is set."""
        for env_name in (self.api_key_env, self.api_key_fallback_env):
            if env_name:
                value = os.environ.get(env_name, "").strip()
                if value:
                    return value
        return ""


@dataclass
class DefaultsConfig:
    synthesizer_preference: list[str] = field(default_factory=lambda: ["gemini", "claude"])
    progress_retention_sec: float = 300.0
    progress_tick_sec: float = 0.2
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class ResonanceConfig:
    terms: list[str] = field(default_factory=list)


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]  # insertion order is the canonical provider order
    personas: dict[str, str] = field(default_factory=dict)
    resonance: ResonanceConfig = field(default_factory=ResonanceConfig)
    available_providers: set[str] = field(default_factory=set)

    def provider_order(self) -> list[str]:
        """Configured provider names with credentials, in canonical order."""
        return [name for name in self.models if name in self.available_providers]


def _settings_path() -> Path:
    override = os.environ.get(_SETTINGS_ENV, "").strip()
    return Path(override) if override else _SETTINGS_PATH


def load_config(settings_path: Path | None = None) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs providers without an API key but does not raise: those providers
    are simply left out of available_providers.
    """
    if settings_path is None:
        settings_path = _settings_path()
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    defaults_raw = raw.get("defaults", {})
    defaults = DefaultsConfig(
        synthesizer_preference=list(defaults_raw.get("synthesizer_preference", ["gemini", "claude"])),
        progress_retention_sec=float(defaults_raw.get("progress_retention_sec", 300)),
        progress_tick_sec=float(defaults_raw.get("progress_tick_sec", 0.2)),
        cors_origins=list(defaults_raw.get("cors_origins", ["*"])),
    )

    cors_env = os.environ.get("CORS_ORIGINS", "").strip()
    if cors_env:
        defaults.cors_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    resonance = ResonanceConfig(
        terms=[str(t).lower() for t in raw.get("resonance", {}).get("terms", [])],
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            label=str(model_raw.get("label", provider_name)),
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=float(model_raw.get("timeout_sec", 30)),
            max_tokens=int(model_raw.get("max_tokens", 1200)),
            expected_sec=float(model_raw.get("expected_sec", 8)),
            base_url=model_raw.get("base_url"),
            api_key_fallback_env=model_raw.get("api_key_fallback_env"),
        )
        models[provider_name] = model_cfg

        if model_cfg.api_key():
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s -- set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        personas={k: str(v) for k, v in (raw.get("personas") or {}).items()},
        resonance=resonance,
        available_providers=available_providers,
    )
