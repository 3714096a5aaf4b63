"""Browser suite fixtures: one login per run, one isolated context per test."""

import os
import re
import shutil
from datetime import datetime

import pytest
from dotenv import load_dotenv

load_dotenv()  # picks up .env at repo root

from playwright.sync_api import Error as PlaywrightError

from core.auth_state import refresh_auth_state
from core.browser import BrowserSession
from utils.config import load_suite_config
from utils.logger import get_logger

RUN_TIMESTAMP = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")


def _artifacts_dir(config, project: str) -> str:
    base = os.environ.get("E2E_ARTIFACTS_DIR")
    if base:
        return os.path.join(base, project)
    return os.path.join(config.settings["reports"]["assets_dir"], project, RUN_TIMESTAMP)


def _safe_name(nodeid: str) -> str:
    return re.sub(r"[^\w.-]+", "_", nodeid).strip("_")[:120]


@pytest.fixture(scope="session")
def e2e_config():
    # Fails the whole session on missing/invalid configuration before any browser starts
    return load_suite_config(require_auth=False)


@pytest.fixture(scope="session")
def browser_session(e2e_config):
    session = BrowserSession.from_config(e2e_config)
    session.start()
    yield session
    session.stop()


@pytest.fixture(scope="session")
def auth_state_path(request, e2e_config):
    """Log in once per run and return the saved auth state file.

    The browser is only requested after the credentials are known to be set.
    """
    path = refresh_auth_state(
        e2e_config,
        lambda: request.getfixturevalue("browser_session"),
        debug_dir=_artifacts_dir(e2e_config, "setup"),
    )
    return str(path)


def _page_for(request, browser_session, e2e_config, project, storage_state=None):
    artifacts = _artifacts_dir(e2e_config, project)
    name = _safe_name(request.node.nodeid)
    video_dir = os.path.join(artifacts, "videos", name)

    context = browser_session.new_context(storage_state=storage_state, record_video_dir=video_dir)
    page = browser_session.new_page(context)
    yield page

    rep_call = getattr(request.node, "rep_call", None)
    failed = rep_call is not None and rep_call.failed
    if failed:
        os.makedirs(artifacts, exist_ok=True)
        try:
            page.screenshot(os.path.join(artifacts, f"{name}.png"))
        except PlaywrightError as e:  # the page may already be gone
            get_logger().warning(f"Failure screenshot not taken: {e}")
    context.close()
    if not failed:
        # Videos are kept for failures only
        shutil.rmtree(video_dir, ignore_errors=True)


@pytest.fixture
def guest_page(request, browser_session, e2e_config):
    yield from _page_for(request, browser_session, e2e_config, "guest-tests")


@pytest.fixture
def member_page(request, e2e_config, auth_state_path, browser_session):
    # auth_state_path comes first so missing credentials fail before Chromium starts
    yield from _page_for(request, browser_session, e2e_config, "member-tests", storage_state=auth_state_path)
