from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from selenium.common.exceptions import InvalidSelectorException, WebDriverException
from selenium.webdriver.common.by import By

from selfheal.core.exceptions import DocumentError, LookupTimeout
from selfheal.core.metadata import InventoryEntry
from selfheal.llm.parser import infer_selector_type
from selfheal.utils.dom_extract import extract_inventory
from selfheal.utils.wait import wait_until

log = logging.getLogger(__name__)


class DocumentQuery(ABC):
    """Read access to the live document an identifier is resolved against."""

    @abstractmethod
    def query(self, identifier: str, timeout: float) -> Any:
        """Returns the first element matching ``identifier`` or raises ``LookupTimeout``."""

    @abstractmethod
    def screenshot(self) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def inventory(self) -> list[InventoryEntry]:
        raise NotImplementedError

    def current_url(self) -> str:
        return ""


class SeleniumDocument(DocumentQuery):
    """Document query capability backed by a Selenium WebDriver."""

    def __init__(self, driver, poll_interval: float = 0.2) -> None:
        self.driver = driver
        self.poll_interval = poll_interval

    def query(self, identifier: str, timeout: float):
        by = self._by(infer_selector_type(identifier))
        invalid: list[InvalidSelectorException] = []

        def first_match():
            try:
                matches = self.driver.find_elements(by, identifier)
            except InvalidSelectorException as exc:
                invalid.append(exc)
                return None
            return matches[0] if matches else None

        element = wait_until(first_match, timeout, self.poll_interval)
        if element is None:
            if invalid:
                log.debug("Selector %r is not valid for %s", identifier, by)
                raise LookupTimeout(f"Invalid selector: {identifier}") from invalid[-1]
            raise LookupTimeout(f"Timed out after {timeout}s waiting for {identifier}")
        return element

    def screenshot(self) -> bytes:
        try:
            return self.driver.get_screenshot_as_png()
        except WebDriverException as exc:
            raise DocumentError(f"Could not capture screenshot: {exc.msg}") from exc

    def inventory(self) -> list[InventoryEntry]:
        try:
            return extract_inventory(self.driver)
        except WebDriverException as exc:
            raise DocumentError(f"Could not collect element inventory: {exc.msg}") from exc

    def current_url(self) -> str:
        try:
            return self.driver.current_url
        except WebDriverException as exc:
            log.debug("Could not read current URL: %s", exc.msg)
            return ""

    @staticmethod
    def _by(selector_type: str) -> str:
        return By.XPATH if selector_type == "xpath" else By.CSS_SELECTOR
