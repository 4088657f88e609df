from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

MODEL_TIERS = ("fast", "balanced", "accurate")


class HealingConfig(BaseModel):
    enabled: bool = True
    cache_ttl_seconds: float = Field(default=3600.0, gt=0)
    lookup_timeout_seconds: float = Field(default=2.0, gt=0)
    cache_path: Path | None = Path(".selector-cache.json")
    max_inventory_entries: int = Field(default=100, gt=0)
    default_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    model_tier: str = "fast"
    max_output_tokens: int = Field(default=1024, gt=0)

    @field_validator("model_tier")
    @classmethod
    def validate_model_tier(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in MODEL_TIERS:
            raise ValueError(f"model_tier must be one of: {', '.join(MODEL_TIERS)}")
        return normalized


class BrowserConfig(BaseModel):
    browser: str = "chrome"
    headless: bool = True
    page_load_timeout_seconds: int = 10

    @field_validator("browser")
    @classmethod
    def validate_browser(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in {"chrome", "firefox"}:
            raise ValueError(f"Unsupported browser: {value}")
        return normalized


class SuiteConfig(BaseModel):
    healing: HealingConfig = Field(default_factory=HealingConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    artifacts_root: Path = Path("artifacts")
