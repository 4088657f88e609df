from __future__ import annotations

import pytest

from selfheal.core.repair import RepairRequester
from selfheal.core.resolver import SelfHealingResolver
from selfheal.core.validator import CandidateValidator
from tests.helpers import FakeClock, FakeCompletionClient, FakeDocument, RecordingCache


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def cache(tmp_path, clock):
    return RecordingCache(tmp_path / "selector-cache.json", ttl_seconds=3600, clock=clock)


@pytest.fixture()
def build(cache, clock):
    """Builds a resolver over a fake document and scripted completion client."""

    def factory(document: FakeDocument, llm_client: FakeCompletionClient, *, enabled: bool = True, immediate_check: bool = True):
        validator = CandidateValidator(document, timeout=2.0)
        repairer = RepairRequester(
            llm_client,
            validator if immediate_check else None,
            clock=clock,
        )
        return SelfHealingResolver(
            document,
            cache,
            repairer,
            validator,
            enabled=enabled,
            lookup_timeout=2.0,
            clock=clock,
        )

    return factory
