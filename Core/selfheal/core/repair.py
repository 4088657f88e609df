from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from selfheal.core.exceptions import CompletionError, SelectorValidationError
from selfheal.core.metadata import InventoryEntry, PageSnapshot, RepairCandidate
from selfheal.core.validator import CandidateValidator
from selfheal.llm.client import CompletionClient
from selfheal.llm.parser import parse_selector_response
from selfheal.llm.prompts import SYSTEM_PROMPT, build_repair_prompt

log = logging.getLogger(__name__)


class RepairRequester:
    """Asks the completion backend for a replacement selector.

    Returns ``None`` instead of raising when the backend fails, answers with
    something that is not a selector, or proposes a selector that does not
    pass the immediate liveness check.
    """

    def __init__(
        self,
        llm_client: CompletionClient,
        validator: CandidateValidator | None = None,
        *,
        model_tier: str = "fast",
        max_output_tokens: int = 1024,
        max_inventory_entries: int = 100,
        default_confidence: float = 0.8,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.llm_client = llm_client
        self.validator = validator
        self.model_tier = model_tier
        self.max_output_tokens = max_output_tokens
        self.max_inventory_entries = max_inventory_entries
        self.default_confidence = default_confidence
        self.clock = clock
        self.last_proposal: str | None = None

    @property
    def provider_name(self) -> str:
        return getattr(self.llm_client, "provider_name", "unknown")

    def build_prompt(
        self,
        identifier: str,
        description: str | None,
        inventory: Sequence[InventoryEntry],
    ) -> str:
        elements = [entry.to_prompt_dict() for entry in inventory[: self.max_inventory_entries]]
        return build_repair_prompt(identifier, description, elements)

    def request_repair(
        self,
        identifier: str,
        description: str | None,
        snapshot: PageSnapshot,
        inventory: Sequence[InventoryEntry],
    ) -> RepairCandidate | None:
        self.last_proposal = None
        prompt = self.build_prompt(identifier, description, inventory)
        try:
            raw_response = self.llm_client.complete(
                prompt,
                snapshot.screenshot,
                system_prompt=SYSTEM_PROMPT,
                model_tier=self.model_tier,
                max_output_tokens=self.max_output_tokens,
            )
        except CompletionError as exc:
            log.error("Selector repair request failed (%s): %s", self.provider_name, exc)
            return None

        try:
            selector, _ = parse_selector_response(raw_response)
        except SelectorValidationError as exc:
            log.warning("Discarding repair response for %r: %s", identifier, exc)
            return None
        self.last_proposal = selector

        if self.validator is not None and not self.validator.validate(selector):
            log.warning("AI suggested selector doesn't work: %s", selector)
            return None

        return RepairCandidate(
            identifier=selector,
            confidence=self.default_confidence,
            generated_at=self.clock(),
            provider=self.provider_name,
        )
