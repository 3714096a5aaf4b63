import os
import time
from pathlib import Path
from typing import Any, Callable, Optional

import requests
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from core.auth import request_tokens
from core.session_seeder import seed_session
from utils.config import SuiteConfig
from utils.logger import get_logger

LOCAL_STORAGE_KEYS_SCRIPT = "() => Object.keys(window.localStorage)"


class VisibilityTimeoutError(Exception):
    """An element the flow depends on never became visible."""

    def __init__(self, description: str, timeout_ms: int):
        super().__init__(f"{description} was not visible within {timeout_ms} ms")
        self.description = description
        self.timeout_ms = timeout_ms


def wait_until_logged_in(page, config: SuiteConfig, timeout: Optional[int] = None) -> None:
    """Block until the logout button is visible, the only reliable logged-in signal."""
    timeout = timeout or config.timeout("login")
    name = config.selector("logout_button")
    try:
        page.wait_for_role("button", name, timeout=timeout)
    except PlaywrightTimeoutError as e:
        raise VisibilityTimeoutError(f"Logout button {name!r}", timeout) from e


def log_login_diagnostics(page, debug_dir: Optional[str] = None) -> None:
    """Dump what the page looks like when the logged-in signal is missing."""
    logger = get_logger()
    try:
        logger.warning(f"Page title: {page.title()}")
        body = page.evaluate("() => document.body ? document.body.innerText : ''") or ""
        logger.warning(f"Page content excerpt: {body[:500]}")
        keys = page.evaluate(LOCAL_STORAGE_KEYS_SCRIPT) or []
        logger.warning(f"LocalStorage keys: {', '.join(keys) or '(none)'}")
        if debug_dir:
            os.makedirs(debug_dir, exist_ok=True)
            page.screenshot(os.path.join(debug_dir, "debug-after-login.png"))
    except PlaywrightError as e:
        logger.warning(f"Could not collect login diagnostics: {e}")


def persist_auth_state(page, config: SuiteConfig, path: Optional[str] = None,
                       debug_dir: Optional[str] = None) -> Path:
    """Save cookies and storage once the logged-in UI is confirmed.

    Nothing is written when the logout button never shows up, so later runs
    cannot pick up a state that silently fails to authenticate.
    """
    logger = get_logger()
    target = Path(path or config.state_path)

    try:
        wait_until_logged_in(page, config)
    except VisibilityTimeoutError:
        logger.error("Logged-in signal not found, auth state not saved")
        log_login_diagnostics(page, debug_dir)
        raise

    target.parent.mkdir(parents=True, exist_ok=True)
    page.storage_state(str(target))
    logger.success(f"Auth state saved to {target}")
    return target


def authenticate(page, config: SuiteConfig, http: Optional[requests.Session] = None,
                 path: Optional[str] = None, debug_dir: Optional[str] = None) -> Path:
    """Run the whole setup phase: exchange, seed, reload, verify, persist."""
    logger = get_logger()
    auth = config.require_auth()
    logger.highlight("Starting programmatic login")

    page.navigate(config.base_url)
    tokens = request_tokens(
        auth, http=http, timeout=config.settings["auth"]["token_request_timeout"]
    )
    seed_session(page, tokens, auth)

    # The SPA only reads the seeded session on a fresh load
    page.reload()
    try:
        page.wait_for_network_idle(timeout=config.timeout("network_idle"))
    except PlaywrightTimeoutError:
        logger.warning("Network did not go idle after reload, continuing")
    page.wait(config.timeout("app_init"))

    return persist_auth_state(page, config, path=path, debug_dir=debug_dir)


def refresh_auth_state(config: SuiteConfig, get_session: Callable[[], Any], path: Optional[str] = None,
                       debug_dir: Optional[str] = None) -> Path:
    """Log in once in a fresh context of the session returned by ``get_session``.

    Credentials are checked before ``get_session`` is called, so a missing
    variable never launches a browser.
    """
    config.require_auth()

    age = auth_state_age(path or config.state_path)
    if age is not None:
        get_logger().info(f"Replacing auth state written {int(age)}s ago")

    session = get_session()
    context = session.new_context()
    try:
        page = session.new_page(context)
        return authenticate(page, config, path=path, debug_dir=debug_dir)
    finally:
        context.close()


def auth_state_age(path: str) -> Optional[float]:
    """Seconds since the state file was written, or None when absent."""
    try:
        return time.time() - os.path.getmtime(path)
    except OSError:
        return None
