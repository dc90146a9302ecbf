import logging

import pytest

from podparts.domain import stocktake as service
from podparts.log_config import configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield root
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler) and handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_configure_logging_sets_level_and_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "console.log"
    configure_logging("warning", str(log_file))

    root = restore_root_logger
    assert root.level == logging.WARNING
    file_handlers = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].baseFilename == str(log_file)

    logging.getLogger("podparts.test").warning("shelf count off")
    file_handlers[0].flush()
    assert "[WARNING] podparts.test: shelf count off" in log_file.read_text()


def test_configure_logging_replaces_file_handler(tmp_path, restore_root_logger):
    configure_logging("INFO", str(tmp_path / "first.log"))
    configure_logging("INFO", str(tmp_path / "second.log"))

    file_handlers = [
        h for h in restore_root_logger.handlers if isinstance(h, logging.FileHandler)
    ]
    assert [h.baseFilename for h in file_handlers] == [str(tmp_path / "second.log")]


def test_unknown_level_defaults_to_info(restore_root_logger):
    configure_logging("CHATTY")
    assert restore_root_logger.level == logging.INFO


def test_low_accuracy_completion_is_logged(app, make_unit, caplog):
    make_unit("L1")
    make_unit("L2")
    st = service.start()
    service.scan_item(st["id"], "L1")

    caplog.set_level(logging.INFO, logger="podparts.domain.stocktake")
    service.complete(st["id"])

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert any("low accuracy 50.00%" in r.getMessage() for r in warnings)
