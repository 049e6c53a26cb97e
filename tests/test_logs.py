import io
import logging

from mini_miner.logs import setup_logging


def test_setup_logging_replaces_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        stream = io.StringIO()
        setup_logging("DEBUG", stream=stream)
        setup_logging("DEBUG", stream=stream)
        assert len(root.handlers) == 1

        logging.getLogger("mini_miner.test").debug("hello")
        line = stream.getvalue()
        assert "[DEBUG]" in line
        assert "test_logs.py" in line
        assert line.rstrip().endswith("- hello")
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
