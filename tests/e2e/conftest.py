"""Pytest configuration and fixtures for E2E tests.

These drive a browser against a running server (hypercorn docqa.main:app)
and are deselected unless run with -m e2e.
"""
import pytest
from playwright.sync_api import Page


# Test configuration
BASE_URL = "http://localhost:5000"
TEST_TIMEOUT = 30000  # 30 seconds


# Note: pytest-playwright provides these built-in options:
# --headed: Run tests in headed mode (visible browser)
# --slowmo: Slow down operations by N milliseconds
# --browser: Choose browser (chromium, firefox, webkit)


@pytest.fixture
def qa_page(page: Page) -> Page:
    """Navigate to the app and return the page object."""
    page.goto(BASE_URL)
    page.wait_for_load_state("networkidle")
    page.set_default_timeout(TEST_TIMEOUT)
    return page


@pytest.fixture
def sample_document(tmp_path):
    """A small text document with two sentences."""
    path = tmp_path / "sample.txt"
    path.write_text(
        "The Lisbon office opened in 2019. It has forty employees.",
        encoding="utf-8",
    )
    return path
