from typing import Any, Callable, Dict, List, Optional
from playwright.sync_api import sync_playwright, Page, Locator

from utils.logger import get_logger


class BrowserPage:
    """Narrow wrapper over a Playwright page.

    Only the calls the suite needs are exposed, so the auth and price code can
    be driven by a fake page in unit tests.
    """

    def __init__(self, page: Page, default_timeout: int = 10000):
        self.page = page
        self.default_timeout = default_timeout
        self.logger = get_logger()

    @property
    def url(self) -> str:
        return self.page.url

    def title(self) -> str:
        return self.page.title()

    def navigate(self, url: str, wait_until: str = "load") -> None:
        self.logger.info(f"Navigating to: {url}", color="blue")
        self.page.goto(url, wait_until=wait_until)

    def reload(self, wait_until: str = "load") -> None:
        self.page.reload(wait_until=wait_until)

    def wait_for_network_idle(self, timeout: Optional[int] = None) -> None:
        self.page.wait_for_load_state("networkidle", timeout=timeout or self.default_timeout)

    def wait(self, ms: int) -> None:
        self.page.wait_for_timeout(ms)

    def evaluate(self, script: str, arg: Any = None) -> Any:
        return self.page.evaluate(script, arg)

    def wait_for_selector(self, selector: str, timeout: Optional[int] = None, state: str = "visible") -> None:
        self.page.wait_for_selector(selector, state=state, timeout=timeout or self.default_timeout)

    def test_id(self, test_id: str) -> Locator:
        return self.page.get_by_test_id(test_id)

    def wait_for_test_id(self, test_id: str, timeout: Optional[int] = None) -> None:
        self.wait_for_selector(f'[data-testid="{test_id}"]', timeout=timeout)

    def text_of_test_id(self, test_id: str, nth: int = 0) -> Optional[str]:
        return self.test_id(test_id).nth(nth).text_content()

    def count_test_id(self, test_id: str) -> int:
        return self.test_id(test_id).count()

    def click_test_id(self, test_id: str, nth: int = 0) -> None:
        self.test_id(test_id).nth(nth).click()

    def role(self, role: str, name: str) -> Locator:
        return self.page.get_by_role(role, name=name)

    def wait_for_role(self, role: str, name: str, timeout: Optional[int] = None) -> None:
        self.role(role, name).wait_for(state="visible", timeout=timeout or self.default_timeout)

    def click_role(self, role: str, name: str) -> None:
        self.role(role, name).click()

    def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        self.page.context.add_cookies(cookies)

    def storage_state(self, path: str) -> Dict[str, Any]:
        return self.page.context.storage_state(path=path)

    def screenshot(self, path: str, full_page: bool = True) -> None:
        self.page.screenshot(path=path, full_page=full_page)

    def open_popup(self, trigger: Callable[[], None], timeout: Optional[int] = None) -> "BrowserPage":
        """Run ``trigger`` and return the popup it opens.

        The popup listener is armed before the trigger runs and both are
        joined, so a fast popup cannot be missed.
        """
        with self.page.expect_popup(timeout=timeout or self.default_timeout) as popup_info:
            trigger()
        popup = popup_info.value
        popup.wait_for_load_state()
        self.logger.debug(f"Popup opened: {popup.url}")
        return BrowserPage(popup, default_timeout=self.default_timeout)


class BrowserSession:
    """Owns the Playwright driver, browser and the contexts created from it."""

    def __init__(self, headless: bool = True, slow_mo: int = 0, timeout: int = 10000,
                 viewport: Optional[Dict[str, int]] = None, locale: Optional[str] = None):
        self.headless = headless
        self.slow_mo = slow_mo
        self.timeout = timeout
        self.viewport = viewport or {"width": 1280, "height": 720}
        self.locale = locale
        self.logger = get_logger()

        # Will be initialized in start()
        self.playwright = None
        self.browser = None

    @classmethod
    def from_config(cls, config) -> "BrowserSession":
        browser_settings = config.settings["browser"]
        return cls(
            headless=browser_settings.get("headless", True),
            slow_mo=browser_settings.get("slow_mo", 0),
            timeout=config.timeout("medium"),
            viewport=browser_settings.get("viewport"),
            locale=browser_settings.get("locale"),
        )

    def start(self) -> None:
        """Initialize the Playwright browser."""
        self.playwright = sync_playwright().start()
        self.browser = self.playwright.chromium.launch(
            headless=self.headless,
            slow_mo=self.slow_mo
        )
        self.logger.info("Browser initialized successfully")

    def stop(self) -> None:
        """Close browser and clean up resources."""
        if self.browser:
            self.browser.close()
        if self.playwright:
            self.playwright.stop()
        self.browser = None
        self.playwright = None
        self.logger.info("Browser resources cleaned up")

    def __enter__(self) -> "BrowserSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def new_context(self, storage_state: Optional[str] = None, record_video_dir: Optional[str] = None):
        """Create an isolated context, optionally pre-loaded with a saved auth state."""
        if not self.browser:
            raise RuntimeError("Browser not initialized. Call start() first.")

        context_kwargs: Dict[str, Any] = {"viewport": self.viewport}
        if self.locale:
            context_kwargs["locale"] = self.locale
        if storage_state:
            context_kwargs["storage_state"] = storage_state
        if record_video_dir:
            context_kwargs["record_video_dir"] = record_video_dir
            context_kwargs["record_video_size"] = self.viewport

        context = self.browser.new_context(**context_kwargs)
        context.set_default_timeout(self.timeout)
        return context

    def new_page(self, context) -> BrowserPage:
        return BrowserPage(context.new_page(), default_timeout=self.timeout)
