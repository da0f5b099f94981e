"""Tests for log sinks."""

import logging
import re
import threading

from autorender.core.console import ConsoleLog, LoggingSink


class TestConsoleLog:
    """Test the timestamped console history."""

    def test_initial_state(self):
        """Test a new log is empty and ready."""
        log = ConsoleLog()
        assert log.lines == []
        assert log.latest == "Ready"

    def test_append_timestamps(self):
        """Test lines are stored with an [HH:MM:SS] prefix."""
        log = ConsoleLog()
        log.append("Render Complete!")

        assert re.fullmatch(r"\[\d{2}:\d{2}:\d{2}\] Render Complete!", log.lines[0])
        assert log.messages == ["Render Complete!"]
        assert log.latest == "Render Complete!"

    def test_text(self):
        """Test text joins lines with newlines."""
        log = ConsoleLog()
        log.append("a")
        log.append("b")
        assert log.text.count("\n") == 2
        assert log.text.endswith("b\n")

    def test_clear(self):
        """Test clearing history."""
        log = ConsoleLog()
        log.append("line")
        log.clear()

        assert log.lines == []
        assert log.latest == "Cleared"

    def test_max_lines(self):
        """Test history is capped to the newest lines."""
        log = ConsoleLog(max_lines=3)
        for i in range(5):
            log.append(f"line {i}")
        assert log.messages == ["line 2", "line 3", "line 4"]

    def test_forwarding(self):
        """Test lines are forwarded without timestamps."""
        target = ConsoleLog()
        log = ConsoleLog(forward_to=target)
        log.append("[Blender] Fra:1")
        assert target.messages == ["[Blender] Fra:1"]

    def test_concurrent_appends(self):
        """Test appends from several threads are all kept."""
        log = ConsoleLog()

        def worker(n):
            for i in range(100):
                log.append(f"{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(log.lines) == 400


class TestLoggingSink:
    """Test forwarding to the logging module."""

    def test_logs_at_level(self, caplog):
        """Test lines become log records."""
        sink = LoggingSink(logging.getLogger("autorender.test"), level=logging.WARNING)
        with caplog.at_level(logging.WARNING, logger="autorender.test"):
            sink.append("[Blender Error] boom")

        assert caplog.records[0].getMessage() == "[Blender Error] boom"
        assert caplog.records[0].levelno == logging.WARNING
