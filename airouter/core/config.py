"""
airouter - Configuration

Provider catalog and global routing flags.

Values come from environment variables (AIROUTER_*) with an optional JSON
provider catalog file. When no catalog is supplied the built-in catalog
below is used.

Catalog file format:
    {
      "providers": [
        {"id": "openai", "enabled": true, "models": [
            {"id": "gpt-4", "input_cost": 0.03, "output_cost": 0.06,
             "quality": "excellent", "speed": "slow"}
        ]}
      ]
    }
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


def _is_truthy(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ModelConfig:
    """Static attributes of one model."""
    id: str
    input_cost: float = 0.0
    output_cost: float = 0.0
    quality: str = "good"  # basic | good | excellent
    speed: str = "medium"  # fast | medium | slow
    enabled: bool = True
    capabilities: List[str] = field(default_factory=lambda: ["chat"])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelConfig":
        return cls(
            id=data["id"],
            input_cost=float(data.get("input_cost", 0.0)),
            output_cost=float(data.get("output_cost", 0.0)),
            quality=data.get("quality", "good"),
            speed=data.get("speed", "medium"),
            enabled=bool(data.get("enabled", True)),
            capabilities=list(data.get("capabilities", ["chat"])),
        )


@dataclass
class ProviderConfig:
    """One provider and its models, in catalog order."""
    id: str
    enabled: bool = True
    models: List[ModelConfig] = field(default_factory=list)

    def enabled_models(self) -> List[ModelConfig]:
        return [m for m in self.models if m.enabled]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderConfig":
        return cls(
            id=data["id"],
            enabled=bool(data.get("enabled", True)),
            models=[ModelConfig.from_dict(m) for m in data.get("models", [])],
        )


def default_providers() -> List[ProviderConfig]:
    """Built-in provider catalog."""
    return [
        ProviderConfig(
            id="openai",
            models=[
                ModelConfig("gpt-4", 0.03, 0.06, "excellent", "slow"),
                ModelConfig("gpt-4-turbo", 0.01, 0.03, "excellent", "medium"),
                ModelConfig("gpt-3.5-turbo", 0.001, 0.002, "good", "fast"),
            ],
        ),
        ProviderConfig(
            id="anthropic",
            models=[
                ModelConfig("claude-3-opus-20240229", 0.015, 0.075, "excellent", "slow"),
                ModelConfig("claude-3-sonnet-20240229", 0.003, 0.015, "excellent", "medium"),
                ModelConfig("claude-3-haiku-20240307", 0.00025, 0.00125, "good", "fast"),
            ],
        ),
    ]


@dataclass
class RouterConfig:
    """Global routing configuration."""
    providers: List[ProviderConfig] = field(default_factory=default_providers)
    fallback_enabled: bool = True
    caching_enabled: bool = True
    cache_ttl: float = 300.0  # seconds
    request_timeout: float = 30.0  # seconds
    metrics_refresh_interval: float = 60.0  # seconds
    cache_cleanup_interval: float = 60.0  # seconds
    max_concurrency: int = 5
    default_strategy: str = "balanced"

    def enabled_providers(self) -> List[ProviderConfig]:
        """Enabled providers in configuration order."""
        return [p for p in self.providers if p.enabled]

    def enabled_models(self) -> List[Tuple[ProviderConfig, ModelConfig]]:
        """Every enabled (provider, model) pair in configuration order."""
        return [
            (provider, model)
            for provider in self.enabled_providers()
            for model in provider.enabled_models()
        ]

    def get_provider(self, provider_id: str) -> Optional[ProviderConfig]:
        for provider in self.providers:
            if provider.id == provider_id:
                return provider
        return None

    @classmethod
    def from_env(cls) -> "RouterConfig":
        """
        Build configuration from environment variables.

        AIROUTER_PROVIDERS_FILE: JSON provider catalog (optional)
        AIROUTER_FALLBACK_ENABLED, AIROUTER_CACHING_ENABLED: booleans
        AIROUTER_CACHE_TTL, AIROUTER_REQUEST_TIMEOUT: seconds
        AIROUTER_METRICS_REFRESH_INTERVAL, AIROUTER_CACHE_CLEANUP_INTERVAL: seconds
        AIROUTER_MAX_CONCURRENCY: int
        AIROUTER_DEFAULT_STRATEGY: strategy name
        """
        providers_file = os.getenv("AIROUTER_PROVIDERS_FILE")
        providers = load_providers_file(providers_file) if providers_file else default_providers()

        return cls(
            providers=providers,
            fallback_enabled=_is_truthy(os.getenv("AIROUTER_FALLBACK_ENABLED"), True),
            caching_enabled=_is_truthy(os.getenv("AIROUTER_CACHING_ENABLED"), True),
            cache_ttl=float(os.getenv("AIROUTER_CACHE_TTL", "300")),
            request_timeout=float(os.getenv("AIROUTER_REQUEST_TIMEOUT", "30")),
            metrics_refresh_interval=float(os.getenv("AIROUTER_METRICS_REFRESH_INTERVAL", "60")),
            cache_cleanup_interval=float(os.getenv("AIROUTER_CACHE_CLEANUP_INTERVAL", "60")),
            max_concurrency=int(os.getenv("AIROUTER_MAX_CONCURRENCY", "5")),
            default_strategy=os.getenv("AIROUTER_DEFAULT_STRATEGY", "balanced"),
        )


def load_providers_file(path: str) -> List[ProviderConfig]:
    """Load a provider catalog from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [ProviderConfig.from_dict(p) for p in data.get("providers", [])]


def use_stub_backends() -> bool:
    """Whether the server should wire deterministic stub backends."""
    return _is_truthy(os.getenv("AIROUTER_USE_STUB_BACKENDS"), False)
