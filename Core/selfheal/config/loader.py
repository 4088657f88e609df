from __future__ import annotations

import json
import os
from pathlib import Path

from selfheal.config.schema import SuiteConfig


class ConfigLoader:
    """Loads and validates the JSON healing configuration."""

    @staticmethod
    def load(path: str | Path) -> SuiteConfig:
        config_path = Path(path)
        with config_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return SuiteConfig.model_validate(payload)

    @staticmethod
    def from_env(config: SuiteConfig | None = None) -> SuiteConfig:
        """Overlays environment variables onto ``config`` (or the defaults)."""

        base = config or SuiteConfig()
        healing = base.healing.model_dump()
        if "ENABLE_SELF_HEALING" in os.environ:
            healing["enabled"] = os.environ["ENABLE_SELF_HEALING"].strip().lower() != "false"
        if os.getenv("SELECTOR_CACHE_TTL_SECONDS"):
            healing["cache_ttl_seconds"] = float(os.environ["SELECTOR_CACHE_TTL_SECONDS"])
        if "SELECTOR_CACHE_PATH" in os.environ:
            healing["cache_path"] = os.environ["SELECTOR_CACHE_PATH"] or None
        if os.getenv("AI_MAX_TOKENS"):
            healing["max_output_tokens"] = int(os.environ["AI_MAX_TOKENS"])
        if os.getenv("AI_MODEL_TIER"):
            healing["model_tier"] = os.environ["AI_MODEL_TIER"]
        payload = base.model_dump()
        payload["healing"] = healing
        return SuiteConfig.model_validate(payload)
