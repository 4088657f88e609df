from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Sequence

from selfheal.core.metadata import InventoryEntry

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")


class ArtifactManager:
    """Stores the screenshots and inventories captured for repair attempts."""

    def __init__(self, root: str | Path = "artifacts") -> None:
        self.root = Path(root)
        self.screenshot_root = self.root / "screenshots"
        self.inventory_root = self.root / "inventories"
        self._ensure_structure()

    def _ensure_structure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.screenshot_root.mkdir(parents=True, exist_ok=True)
        self.inventory_root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def timestamp() -> str:
        return datetime.now(UTC).strftime("%Y%m%dT%H%M%S%fZ")

    @staticmethod
    def slug(identifier: str, max_length: int = 60) -> str:
        cleaned = _UNSAFE.sub("_", identifier).strip("_")
        return (cleaned or "selector")[:max_length]

    def write_screenshot(self, identifier: str, image: bytes, timestamp: str | None = None) -> Path:
        stamp = timestamp or self.timestamp()
        path = self.screenshot_root / f"{stamp}_{self.slug(identifier)}.png"
        path.write_bytes(image)
        return path

    def write_inventory(
        self,
        identifier: str,
        inventory: Sequence[InventoryEntry],
        timestamp: str | None = None,
    ) -> Path:
        stamp = timestamp or self.timestamp()
        path = self.inventory_root / f"{stamp}_{self.slug(identifier)}.json"
        path.write_text(
            json.dumps([entry.to_prompt_dict() for entry in inventory], indent=2),
            encoding="utf-8",
        )
        return path
