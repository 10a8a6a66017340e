import contextlib
import logging

from petsitters_api.app.core.config import settings
from petsitters_api.app.core.logging_config import setup_logging


@contextlib.contextmanager
def bare_root_logger():
    """Run with no handlers on the root logger, then put everything back."""
    root = logging.getLogger()
    handlers, level = root.handlers, root.level
    root.handlers = []
    try:
        yield root
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = handlers
        root.setLevel(level)


def _file_handlers(root):
    return [h for h in root.handlers if isinstance(h, logging.FileHandler)]


def test_file_handler_creates_missing_directory(tmp_path):
    logfile = tmp_path / "logs" / "nested" / "app.log"
    with bare_root_logger() as root:
        setup_logging(level="debug", logfile=str(logfile))

        assert root.level == logging.DEBUG
        assert logfile.parent.is_dir()
        handlers = _file_handlers(root)
        assert len(handlers) == 1
        assert handlers[0].baseFilename == str(logfile.resolve())

        logging.getLogger("petsitters_api.test").info("written to file")
        handlers[0].flush()
    assert "written to file" in logfile.read_text(encoding="utf-8")


def test_defaults_come_from_settings(tmp_path, monkeypatch):
    logfile = tmp_path / "from-settings" / "api.log"
    monkeypatch.setattr(settings, "log_level", "WARNING")
    monkeypatch.setattr(settings, "log_file", str(logfile))

    with bare_root_logger() as root:
        setup_logging()

        assert root.level == logging.WARNING
        assert [h.baseFilename for h in _file_handlers(root)] == [str(logfile.resolve())]


def test_console_only_and_unknown_level(monkeypatch):
    monkeypatch.setattr(settings, "log_file", "")
    with bare_root_logger() as root:
        setup_logging(level="chatty")

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert _file_handlers(root) == []


def test_second_call_adds_nothing(tmp_path):
    with bare_root_logger() as root:
        setup_logging(level="info", logfile=str(tmp_path / "app.log"))
        before = list(root.handlers)
        setup_logging(level="debug", logfile=str(tmp_path / "other.log"))

        assert root.handlers == before
        assert root.level == logging.INFO
    assert not (tmp_path / "other.log").exists()
