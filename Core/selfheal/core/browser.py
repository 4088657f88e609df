from __future__ import annotations

from selenium import webdriver
from selenium.webdriver import ChromeOptions, FirefoxOptions

from selfheal.config.schema import BrowserConfig


class BrowserSession:
    """Creates browser instances using Selenium Manager."""

    def __init__(self, config: BrowserConfig | None = None) -> None:
        self.config = config or BrowserConfig()

    def start(self, browser_name: str | None = None):
        normalized = (browser_name or self.config.browser).lower()
        if normalized == "chrome":
            options = ChromeOptions()
            if self.config.headless:
                options.add_argument("--headless=new")
            options.add_argument("--window-size=1440,1200")
            driver = webdriver.Chrome(options=options)
        elif normalized == "firefox":
            options = FirefoxOptions()
            if self.config.headless:
                options.add_argument("-headless")
            driver = webdriver.Firefox(options=options)
        else:
            raise ValueError(f"Unsupported browser: {normalized}")
        driver.set_page_load_timeout(self.config.page_load_timeout_seconds)
        driver.implicitly_wait(0)
        return driver
