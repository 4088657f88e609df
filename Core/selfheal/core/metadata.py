from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


@dataclass(frozen=True, slots=True)
class LogicalReference:
    identifier: str
    description: str | None = None


@dataclass(slots=True)
class InventoryEntry:
    """One interactive element as seen by the repair prompt."""

    tag: str
    id: str = ""
    test_id: str = ""
    role: str = ""
    text: str = ""
    name: str = ""
    aria_label: str = ""
    placeholder: str = ""
    type: str = ""
    classes: list[str] = field(default_factory=list)
    selector_hint: str = ""

    def to_prompt_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"tag": self.tag}
        for key in ("id", "test_id", "role", "text", "name", "aria_label", "placeholder", "type", "selector_hint"):
            value = getattr(self, key)
            if value:
                payload[key] = value
        if self.classes:
            payload["classes"] = list(self.classes)
        return payload


@dataclass(slots=True)
class PageSnapshot:
    url: str
    screenshot: bytes | None
    captured_at: float


@dataclass(slots=True)
class RepairCandidate:
    identifier: str
    confidence: float
    generated_at: float
    provider: str = "unknown"


class CacheEntry(BaseModel):
    healed_identifier: str
    timestamp: float
    confidence: float = Field(ge=0.0, le=1.0)


class ResolutionStage(str, Enum):
    PRIMARY = "primary"
    CACHED = "cached"
    REPAIRED = "repaired"
    FAILED = "failed"


@dataclass(slots=True)
class Resolution:
    handle: Any
    identifier: str
    stage: ResolutionStage

    @property
    def healed(self) -> bool:
        return self.stage is not ResolutionStage.PRIMARY


@dataclass(slots=True)
class RepairAttempt:
    primary_identifier: str
    description: str | None
    candidate: str
    outcome: str
    provider: str
    success: bool
    inventory_size: int = 0
    artifact_paths: dict[str, str] = field(default_factory=dict)
    recorded_at: str = ""
