from unittest.mock import AsyncMock, MagicMock

import pytest


# ── Patch settings before any other import ──────────────────────────────────
@pytest.fixture(autouse=True)
def _patch_settings(monkeypatch):
    from storefront.core.config import settings
    monkeypatch.setattr(settings, "cart_storage_name", "cart-storage")
    monkeypatch.setattr(settings, "cart_session_cookie", "cart_session")


@pytest.fixture
def mock_db():
    """Create a mock async database session."""
    db = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.add = MagicMock()
    db.delete = AsyncMock()
    db.get = AsyncMock(return_value=None)
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


def scalar_result(value):
    """Result double whose scalar_one_or_none() returns ``value``."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def count_result(value):
    """Result double for ``select(func.count())`` queries."""
    result = MagicMock()
    result.scalar.return_value = value
    return result


def rows_result(rows):
    """Result double whose scalars().all() returns ``rows``."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(rows)
    return result
