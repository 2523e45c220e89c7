import logging

import pytest

from extproc.utils.logging_config import setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_file_gets_records_and_console_stays_quiet(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("EXTPROC_LOG_FSYNC", "yes")
    log_file = tmp_path / "logs" / "run.log"
    logger = setup_logging(level="DEBUG", log_file=log_file)
    assert logger.name == "extproc"

    logging.getLogger("extproc.core.executor").debug("START convert")
    logging.getLogger("extproc.core.executor").warning("slow child")
    for h in logging.getLogger().handlers:
        h.flush()

    text = log_file.read_text()
    assert "START convert" in text and "slow child" in text
    out = capsys.readouterr().out
    assert "slow child" in out
    assert "START convert" not in out


def test_repeated_setup_does_not_duplicate_handlers(tmp_path):
    setup_logging(log_file=tmp_path / "a.log")
    setup_logging(log_file=tmp_path / "b.log")
    assert len(logging.getLogger().handlers) == 2


def test_unknown_level_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        setup_logging(level="LOUD", log_file=tmp_path / "x.log")
