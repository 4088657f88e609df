from __future__ import annotations

from selenium.common.exceptions import (
    ElementNotInteractableException,
    StaleElementReferenceException,
)

from selfheal.core.resolver import SelfHealingResolver


class SafeActions:
    """Element interactions routed through the self-healing resolver.

    A stale or not-yet-interactable element is re-resolved once before the
    action is retried; any other Selenium error propagates.
    """

    def __init__(self, resolver: SelfHealingResolver) -> None:
        self.resolver = resolver

    def click(self, selector: str, description: str | None = None) -> None:
        element = self.resolver.resolve(selector, description)
        try:
            element.click()
        except (ElementNotInteractableException, StaleElementReferenceException):
            self.resolver.resolve(selector, description).click()

    def type(self, selector: str, value: str, description: str | None = None, clear_first: bool = True) -> None:
        element = self.resolver.resolve(selector, description)
        try:
            self._fill(element, value, clear_first)
        except (ElementNotInteractableException, StaleElementReferenceException):
            self._fill(self.resolver.resolve(selector, description), value, clear_first)

    @staticmethod
    def _fill(element, value: str, clear_first: bool) -> None:
        if clear_first:
            element.clear()
        element.send_keys(value)
