"""Tests for the bounded error log."""

from shiftengine.error_log import ErrorLogBuffer


class TestErrorLogBuffer:
    """Tests for recent-error bookkeeping."""

    def test_newest_first(self):
        buffer = ErrorLogBuffer()
        buffer.add_error("first")
        buffer.add_error("second")
        assert [e.message for e in buffer.recent()] == ["second", "first"]

    def test_bounded(self):
        buffer = ErrorLogBuffer(max_entries=3)
        for i in range(5):
            buffer.add_error(f"error {i}")
        assert len(buffer) == 3
        assert [e.message for e in buffer.recent()] == ["error 4", "error 3", "error 2"]

    def test_default_capacity(self):
        buffer = ErrorLogBuffer()
        for i in range(250):
            buffer.add_error(str(i))
        assert len(buffer) == 200

    def test_exception_detail(self):
        buffer = ErrorLogBuffer()
        buffer.add_error("Pairing disabled", ValueError("bad window"))
        entry = buffer.recent()[0]
        assert entry.detail == "ValueError: bad window"

    def test_none_message_and_clear(self):
        buffer = ErrorLogBuffer()
        buffer.add_error(None)
        assert buffer.recent()[0].message == ""
        buffer.clear()
        assert len(buffer) == 0
