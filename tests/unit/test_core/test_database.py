"""Unit tests for the async engine lifecycle."""

from pathlib import Path

import pytest

from commerce_export.core import database


class TestEngineLifecycle:
    """Tests for init_engine, get_engine, and dispose_engine."""

    def test_uninitialized_raises(self) -> None:
        """Accessors fail before init_engine is called."""
        with pytest.raises(RuntimeError, match="not initialized"):
            database.get_engine()
        with pytest.raises(RuntimeError, match="not initialized"):
            database.get_session_factory()

    async def test_init_and_dispose(self, tmp_path: Path) -> None:
        """The engine is available until disposed."""
        engine = database.init_engine(f"sqlite+aiosqlite:///{tmp_path / 'state.db'}")

        assert database.get_engine() is engine
        assert database.get_session_factory() is not None

        await database.dispose_engine()
        with pytest.raises(RuntimeError):
            database.get_engine()
