import pytest
from unittest.mock import patch, MagicMock

from core.browser import BrowserPage, BrowserSession


class TestBrowserSession:

    @patch("core.browser.sync_playwright")
    def test_start_and_stop(self, mock_playwright):
        # Arrange
        mock_playwright_instance = MagicMock()
        mock_playwright.return_value.start.return_value = mock_playwright_instance
        mock_browser = MagicMock()
        mock_playwright_instance.chromium.launch.return_value = mock_browser

        # Act
        session = BrowserSession(headless=True, slow_mo=10)
        session.start()
        session.stop()

        # Assert
        mock_playwright_instance.chromium.launch.assert_called_once_with(headless=True, slow_mo=10)
        mock_browser.close.assert_called_once()
        mock_playwright_instance.stop.assert_called_once()
        assert session.browser is None

    @patch("core.browser.sync_playwright")
    def test_new_context_with_saved_state_and_video(self, mock_playwright):
        mock_playwright_instance = MagicMock()
        mock_playwright.return_value.start.return_value = mock_playwright_instance
        mock_browser = MagicMock()
        mock_playwright_instance.chromium.launch.return_value = mock_browser

        session = BrowserSession(timeout=7000, viewport={"width": 800, "height": 600}, locale="zh-TW")
        session.start()
        context = session.new_context(storage_state="auth/user.json", record_video_dir="videos")

        mock_browser.new_context.assert_called_once_with(
            viewport={"width": 800, "height": 600},
            locale="zh-TW",
            storage_state="auth/user.json",
            record_video_dir="videos",
            record_video_size={"width": 800, "height": 600},
        )
        context.set_default_timeout.assert_called_once_with(7000)

    def test_new_context_requires_start(self):
        with pytest.raises(RuntimeError):
            BrowserSession().new_context()

    def test_from_config(self, suite_config):
        session = BrowserSession.from_config(suite_config)

        assert session.headless is True
        assert session.timeout == 10000
        assert session.viewport == {"width": 1280, "height": 720}


class TestBrowserPage:

    def test_open_popup_arms_listener_before_trigger(self):
        events = []
        page = MagicMock()
        popup = MagicMock()
        popup.url = "https://rental.example.com/cars/1"

        class _PopupInfo:
            value = popup

        class _ExpectPopup:
            def __enter__(self):
                events.append("armed")
                return _PopupInfo()

            def __exit__(self, *exc):
                events.append("joined")
                return False

        page.expect_popup.return_value = _ExpectPopup()

        result = BrowserPage(page).open_popup(lambda: events.append("clicked"))

        assert events == ["armed", "clicked", "joined"]
        assert isinstance(result, BrowserPage)
        assert result.page is popup
        popup.wait_for_load_state.assert_called_once()

    def test_text_of_test_id(self):
        page = MagicMock()
        page.get_by_test_id.return_value.nth.return_value.text_content.return_value = "1,500"

        assert BrowserPage(page).text_of_test_id("search_carList_originPrice", 2) == "1,500"
        page.get_by_test_id.assert_called_once_with("search_carList_originPrice")
        page.get_by_test_id.return_value.nth.assert_called_once_with(2)

    def test_wait_for_role_uses_visible_state(self):
        page = MagicMock()

        BrowserPage(page, default_timeout=5000).wait_for_role("button", "登出")

        page.get_by_role.assert_called_once_with("button", name="登出")
        page.get_by_role.return_value.wait_for.assert_called_once_with(state="visible", timeout=5000)

    def test_wait_for_test_id_builds_selector(self):
        page = MagicMock()

        BrowserPage(page).wait_for_test_id("carDetail_originalPrice", timeout=3000)

        page.wait_for_selector.assert_called_once_with(
            '[data-testid="carDetail_originalPrice"]', state="visible", timeout=3000
        )
