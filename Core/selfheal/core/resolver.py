from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from selfheal.config.schema import SuiteConfig
from selfheal.core.cache import SelectorCache
from selfheal.core.document import DocumentQuery, SeleniumDocument
from selfheal.core.exceptions import DocumentError, LookupTimeout, ResolutionFailure
from selfheal.core.metadata import (
    InventoryEntry,
    LogicalReference,
    PageSnapshot,
    RepairAttempt,
    Resolution,
    ResolutionStage,
)
from selfheal.core.repair import RepairRequester
from selfheal.core.validator import CandidateValidator
from selfheal.llm.client import CompletionClient, LazyCompletionClient
from selfheal.logging.artifacts import ArtifactManager
from selfheal.logging.audit import HealingAuditLogger

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _ResolutionRun:
    reference: LogicalReference
    last_candidate: str | None = None
    reason: str = ""


class SelfHealingResolver:
    """Centralized element lookup with cached, AI-assisted selector repair.

    Each call walks PRIMARY -> CACHED -> REPAIRED and stops at the first stage
    that yields a live element; exhausting the stages raises
    :class:`ResolutionFailure`. Nothing is returned that has not resolved
    against the document during this call.
    """

    def __init__(
        self,
        document: DocumentQuery,
        cache: SelectorCache,
        repairer: RepairRequester,
        validator: CandidateValidator | None = None,
        *,
        enabled: bool = True,
        lookup_timeout: float = 2.0,
        audit_logger: HealingAuditLogger | None = None,
        artifact_manager: ArtifactManager | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.document = document
        self.cache = cache
        self.repairer = repairer
        self.validator = validator or CandidateValidator(document, lookup_timeout)
        self.enabled = enabled
        self.lookup_timeout = lookup_timeout
        self.audit_logger = audit_logger
        self.artifact_manager = artifact_manager
        self.clock = clock
        self._steps: dict[ResolutionStage, Callable[[_ResolutionRun], Resolution | ResolutionStage]] = {
            ResolutionStage.PRIMARY: self._try_primary,
            ResolutionStage.CACHED: self._try_cached,
            ResolutionStage.REPAIRED: self._try_repair,
        }

    def resolve(self, identifier: str, description: str | None = None) -> Any:
        return self.locate(identifier, description).handle

    def locate(self, identifier: str, description: str | None = None) -> Resolution:
        run = _ResolutionRun(LogicalReference(identifier, description))
        if not self.enabled:
            return self._resolve_direct(run)

        stage = ResolutionStage.PRIMARY
        while stage is not ResolutionStage.FAILED:
            outcome = self._steps[stage](run)
            if isinstance(outcome, Resolution):
                return outcome
            stage = outcome
        raise ResolutionFailure(identifier, run.last_candidate, run.reason)

    def _resolve_direct(self, run: _ResolutionRun) -> Resolution:
        identifier = run.reference.identifier
        handle = self._lookup(identifier)
        if handle is None:
            raise ResolutionFailure(identifier, reason="self-healing is disabled")
        return Resolution(handle, identifier, ResolutionStage.PRIMARY)

    def _try_primary(self, run: _ResolutionRun) -> Resolution | ResolutionStage:
        identifier = run.reference.identifier
        handle = self._lookup(identifier)
        if handle is not None:
            return Resolution(handle, identifier, ResolutionStage.PRIMARY)
        log.info("Selector failed: %s; attempting self-healing", identifier)
        return ResolutionStage.CACHED

    def _try_cached(self, run: _ResolutionRun) -> Resolution | ResolutionStage:
        identifier = run.reference.identifier
        entry = self.cache.get(identifier)
        if entry is None:
            return ResolutionStage.REPAIRED
        handle = self.validator.probe(entry.healed_identifier)
        if handle is not None:
            log.info("Using cached healed selector for %s: %s", identifier, entry.healed_identifier)
            return Resolution(handle, entry.healed_identifier, ResolutionStage.CACHED)
        log.warning(
            "Cached selector %s for %s also failed; regenerating",
            entry.healed_identifier,
            identifier,
        )
        run.last_candidate = entry.healed_identifier
        self.cache.invalidate(identifier)
        return ResolutionStage.REPAIRED

    def _try_repair(self, run: _ResolutionRun) -> Resolution | ResolutionStage:
        reference = run.reference
        try:
            snapshot = self._capture_snapshot()
            inventory = self.document.inventory()
        except DocumentError as exc:
            log.error("Could not capture page state for %s: %s", reference.identifier, exc)
            run.reason = str(exc)
            return ResolutionStage.FAILED

        artifact_paths = self._store_artifacts(reference.identifier, snapshot, inventory)
        candidate = self.repairer.request_repair(
            reference.identifier,
            reference.description,
            snapshot,
            inventory,
        )
        if candidate is None:
            proposal = self.repairer.last_proposal
            run.last_candidate = proposal or run.last_candidate
            run.reason = "selector repair produced no usable candidate"
            self._audit(run, proposal or "", "rejected" if proposal else "unavailable", False, inventory, artifact_paths)
            return ResolutionStage.FAILED

        run.last_candidate = candidate.identifier
        handle = self.validator.probe(candidate.identifier)
        if handle is None:
            log.warning("Repaired selector %s did not resolve; not caching it", candidate.identifier)
            run.reason = "repaired selector failed validation"
            self._audit(run, candidate.identifier, "invalid", False, inventory, artifact_paths)
            return ResolutionStage.FAILED

        self.cache.put(reference.identifier, candidate.identifier, candidate.confidence)
        log.info("Healed selector: %s -> %s", reference.identifier, candidate.identifier)
        self._audit(run, candidate.identifier, "healed", True, inventory, artifact_paths)
        return Resolution(handle, candidate.identifier, ResolutionStage.REPAIRED)

    def _lookup(self, identifier: str) -> Any | None:
        try:
            return self.document.query(identifier, self.lookup_timeout)
        except LookupTimeout as exc:
            log.debug("Lookup of %r failed: %s", identifier, exc)
            return None

    def _capture_snapshot(self) -> PageSnapshot:
        return PageSnapshot(
            url=self.document.current_url(),
            screenshot=self.document.screenshot(),
            captured_at=self.clock(),
        )

    def _store_artifacts(
        self,
        identifier: str,
        snapshot: PageSnapshot,
        inventory: list[InventoryEntry],
    ) -> dict[str, str]:
        if self.artifact_manager is None:
            return {}
        timestamp = self.artifact_manager.timestamp()
        paths: dict[str, str] = {}
        try:
            paths["inventory"] = str(self.artifact_manager.write_inventory(identifier, inventory, timestamp))
            if snapshot.screenshot:
                paths["screenshot"] = str(
                    self.artifact_manager.write_screenshot(identifier, snapshot.screenshot, timestamp)
                )
        except OSError as exc:
            log.warning("Could not store repair artifacts for %s: %s", identifier, exc)
        return paths

    def _audit(
        self,
        run: _ResolutionRun,
        candidate: str,
        outcome: str,
        success: bool,
        inventory: list[InventoryEntry],
        artifact_paths: dict[str, str],
    ) -> None:
        if self.audit_logger is None:
            return
        attempt = RepairAttempt(
            primary_identifier=run.reference.identifier,
            description=run.reference.description,
            candidate=candidate,
            outcome=outcome,
            provider=self.repairer.provider_name,
            success=success,
            inventory_size=len(inventory),
            artifact_paths=artifact_paths,
        )
        try:
            self.audit_logger.write(attempt)
        except OSError as exc:
            log.warning("Could not record repair attempt for %s: %s", run.reference.identifier, exc)


def build_resolver(
    driver,
    config: SuiteConfig | None = None,
    llm_client: CompletionClient | None = None,
    cache: SelectorCache | None = None,
    record_artifacts: bool = True,
) -> SelfHealingResolver:
    """Wires a resolver for a Selenium driver from ``config``.

    Each worker process should build its own resolver so that no two
    resolvers share a cache file.
    """

    suite_config = config or SuiteConfig()
    healing = suite_config.healing
    document = SeleniumDocument(driver)
    validator = CandidateValidator(document, healing.lookup_timeout_seconds)
    repairer = RepairRequester(
        llm_client or LazyCompletionClient(),
        validator,
        model_tier=healing.model_tier,
        max_output_tokens=healing.max_output_tokens,
        max_inventory_entries=healing.max_inventory_entries,
        default_confidence=healing.default_confidence,
    )
    if cache is None:
        cache = SelectorCache(healing.cache_path, healing.cache_ttl_seconds)
    audit_logger = HealingAuditLogger(suite_config.artifacts_root) if record_artifacts else None
    artifact_manager = ArtifactManager(suite_config.artifacts_root) if record_artifacts else None
    return SelfHealingResolver(
        document,
        cache,
        repairer,
        validator,
        enabled=healing.enabled,
        lookup_timeout=healing.lookup_timeout_seconds,
        audit_logger=audit_logger,
        artifact_manager=artifact_manager,
    )
