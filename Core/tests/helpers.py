from __future__ import annotations

from collections.abc import Iterable
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import pytest
from selenium.common.exceptions import WebDriverException

from selfheal.config.schema import BrowserConfig
from selfheal.core.browser import BrowserSession
from selfheal.core.cache import SelectorCache
from selfheal.core.document import DocumentQuery
from selfheal.core.exceptions import CompletionError, DocumentError, LookupTimeout
from selfheal.core.metadata import InventoryEntry
from selfheal.logging.artifacts import ArtifactManager
from selfheal.logging.audit import HealingAuditLogger

SCREENSHOT_BYTES = b"\x89PNG\r\n\x1a\nfake"


class FakeElement:
    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        self.clicks = 0
        self.typed: list[str] = []
        self.cleared = 0

    def click(self) -> None:
        self.clicks += 1

    def clear(self) -> None:
        self.cleared += 1

    def send_keys(self, value: str) -> None:
        self.typed.append(value)


class FakeDocument(DocumentQuery):
    """In-memory page where only the identifiers in ``live`` resolve."""

    def __init__(
        self,
        live: Iterable[str] = (),
        inventory: list[InventoryEntry] | None = None,
        screenshot: bytes = SCREENSHOT_BYTES,
    ) -> None:
        self.live = set(live)
        self.entries = inventory if inventory is not None else [
            InventoryEntry(tag="button", id="submit", text="Submit", selector_hint="#submit"),
        ]
        self.image = screenshot
        self.queries: list[tuple[str, float]] = []
        self.screenshots = 0
        self._handles: dict[str, FakeElement] = {}

    def query(self, identifier: str, timeout: float) -> FakeElement:
        self.queries.append((identifier, timeout))
        if identifier not in self.live:
            raise LookupTimeout(f"Timed out after {timeout}s waiting for {identifier}")
        return self._handles.setdefault(identifier, FakeElement(identifier))

    def screenshot(self) -> bytes:
        self.screenshots += 1
        return self.image

    def inventory(self) -> list[InventoryEntry]:
        return list(self.entries)

    def current_url(self) -> str:
        return "http://localhost/test"

    def add(self, element: FakeElement) -> None:
        self.live.add(element.identifier)
        self._handles[element.identifier] = element

    def queried(self) -> list[str]:
        return [identifier for identifier, _ in self.queries]


class FakeCompletionClient:
    """Returns scripted responses and records every request."""

    provider_name = "fake"

    def __init__(self, *responses: str | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    def complete(
        self,
        prompt: str,
        image: bytes | None = None,
        *,
        system_prompt: str | None = None,
        model_tier: str = "fast",
        max_output_tokens: int = 1024,
    ) -> str:
        self.calls.append(
            {
                "prompt": prompt,
                "image": image,
                "system_prompt": system_prompt,
                "model_tier": model_tier,
                "max_output_tokens": max_output_tokens,
            }
        )
        if not self.responses:
            raise CompletionError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingCache(SelectorCache):
    """Selector cache that remembers which operations were called."""

    def __init__(self, *args, **kwargs) -> None:
        self.operations: list[tuple[str, str]] = []
        super().__init__(*args, **kwargs)

    def get(self, identifier):
        self.operations.append(("get", identifier))
        return super().get(identifier)

    def put(self, identifier, healed_identifier, confidence):
        self.operations.append(("put", identifier))
        return super().put(identifier, healed_identifier, confidence)

    def invalidate(self, identifier):
        self.operations.append(("invalidate", identifier))
        return super().invalidate(identifier)


@contextmanager
def managed_driver(browser_name: str = "chrome") -> Iterator[object]:
    session = BrowserSession(BrowserConfig(browser=browser_name, headless=True))
    try:
        driver = session.start()
    except WebDriverException as exc:
        pytest.skip(f"WebDriver could not start for {browser_name}: {exc}")
    try:
        yield driver
    finally:
        driver.quit()


def write_page(root: Path, body: str) -> str:
    page = root / "page.html"
    page.write_text(f"<!doctype html><html><body>{body}</body></html>", encoding="utf-8")
    return page.resolve().as_uri()


class BlankScreenDocument(FakeDocument):
    """Page whose screenshot capture fails."""

    def screenshot(self) -> bytes:
        self.screenshots += 1
        raise DocumentError("Could not capture screenshot: tab crashed")


class FullDiskAuditLogger(HealingAuditLogger):
    def write(self, attempt) -> None:
        raise OSError(28, "No space left on device")


class FullDiskArtifactManager(ArtifactManager):
    def write_inventory(self, identifier, inventory, timestamp=None):
        raise OSError(28, "No space left on device")
