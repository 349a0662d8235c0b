"""
Tests for CancelToken.
"""

import pytest

from vekkam.ai import CancelToken
from vekkam.exceptions import GenerationCancelled


class TestCancelToken:
    """Test cancellation flag and cleanup callbacks."""

    def test_callbacks_run_once(self):
        token = CancelToken()
        calls = []
        token.on_cancel(lambda: calls.append("closed"))

        token.cancel()
        token.cancel()

        assert token.is_cancelled
        assert calls == ["closed"]

    def test_callback_registered_after_cancel_runs_immediately(self):
        token = CancelToken()
        token.cancel()
        calls = []

        token.on_cancel(lambda: calls.append("closed"))

        assert calls == ["closed"]

    def test_unregister(self):
        token = CancelToken()
        calls = []
        unregister = token.on_cancel(lambda: calls.append("closed"))

        unregister()
        token.cancel()

        assert calls == []

    def test_failing_callback_does_not_block_others(self):
        token = CancelToken()
        calls = []

        def broken():
            raise OSError("already closed")

        token.on_cancel(broken)
        token.on_cancel(lambda: calls.append("closed"))
        token.cancel()

        assert calls == ["closed"]

    def test_raise_if_cancelled(self):
        token = CancelToken()
        token.raise_if_cancelled()  # Should not raise

        token.cancel()
        with pytest.raises(GenerationCancelled) as exc_info:
            token.raise_if_cancelled(partial_text="Par")
        assert exc_info.value.partial_text == "Par"
        assert exc_info.value.kind == "cancelled"
