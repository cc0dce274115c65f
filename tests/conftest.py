"""Pytest configuration and fixtures for Tessera tests."""

import pytest

from tessera import Context, ContextSlot, Environment


@pytest.fixture
def env():
    """Create a basic (strict) Tessera Environment."""
    return Environment()


@pytest.fixture
def env_lenient():
    """Create an Environment where undefined names render as empty."""
    return Environment(strict=False)


@pytest.fixture
def slot():
    """A render slot seeded with a small base context."""
    return ContextSlot(Context({"x": 1, "timezone": "UTC"}))


@pytest.fixture
def retained():
    """Stand-in for tag-side global storage that outlives a render.

    Cleared after the test so retained handles are released.
    """
    store: list = []
    yield store
    store.clear()


def assert_contains(template_result: str, *expected_parts: str) -> None:
    """Assert template result contains all expected parts."""
    for part in expected_parts:
        assert part in template_result, (
            f"Template output missing expected content:\n"
            f"  Missing: {part!r}\n"
            f"  Actual: {template_result!r}"
        )
