"""Shared pytest fixtures."""

from __future__ import annotations

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog():
    """CLI tests configure structlog globally; start every test from the defaults."""
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()
