from __future__ import annotations

from typing import Callable

from selenium import webdriver
from selenium.webdriver import ChromeOptions, FirefoxOptions

from selfheal.config.schema import EnvironmentConfig
from selfheal.core.document import SeleniumDocument


def _chrome_driver(environment: EnvironmentConfig):
    options = ChromeOptions()
    if environment.headless:
        options.add_argument("--headless=new")
    options.add_argument("--window-size=1440,1200")
    return webdriver.Chrome(options=options)


def _firefox_driver(environment: EnvironmentConfig):
    options = FirefoxOptions()
    if environment.headless:
        options.add_argument("-headless")
    return webdriver.Firefox(options=options)


DRIVER_BUILDERS: dict[str, Callable[[EnvironmentConfig], object]] = {
    "chrome": _chrome_driver,
    "firefox": _firefox_driver,
}


class BrowserSession:
    """Owns one Selenium driver and exposes the loaded page as a resolvable document."""

    def __init__(self, environment: EnvironmentConfig) -> None:
        self.environment = environment
        self.driver = None

    def start(self, browser_name: str | None = None):
        name = (browser_name or self.environment.browser_matrix[0]).lower()
        builder = DRIVER_BUILDERS.get(name)
        if builder is None:
            raise ValueError(f"Unsupported browser: {browser_name}")
        driver = builder(self.environment)
        driver.set_page_load_timeout(self.environment.default_timeout_seconds)
        # Resolution counts matches itself; an implicit wait would stall every zero-match probe.
        driver.implicitly_wait(0)
        self.driver = driver
        return driver

    def open(self, url: str | None = None) -> SeleniumDocument:
        if self.driver is None:
            raise RuntimeError("Browser session has not been started")
        self.driver.get(url or self.environment.base_url)
        return SeleniumDocument(self.driver)

    def stop(self) -> None:
        if self.driver is not None:
            self.driver.quit()
            self.driver = None
