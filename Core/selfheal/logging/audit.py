from __future__ import annotations

import json
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from selfheal.core.metadata import RepairAttempt


class HealingAuditLogger:
    """Appends one JSON line per repair attempt."""

    def __init__(self, root: str | Path = "artifacts") -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.healed_elements_path = self.root / "healed_elements.jsonl"

    def write(self, attempt: RepairAttempt) -> None:
        payload = asdict(attempt)
        if not payload["recorded_at"]:
            payload["recorded_at"] = datetime.now(UTC).isoformat()
        with self.healed_elements_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload) + "\n")

    def read_attempts(self) -> list[dict[str, Any]]:
        if not self.healed_elements_path.exists():
            return []
        attempts: list[dict[str, Any]] = []
        with self.healed_elements_path.open("r", encoding="utf-8") as handle:
            for line in handle:
                if line.strip():
                    attempts.append(json.loads(line))
        return attempts
