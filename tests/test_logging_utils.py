import json
import logging

import pytest

from yappli_sync.logging_utils import configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_file_log_is_json_with_entry_context(config, restore_root_logger):
    configure_logging(config)

    logging.getLogger("yappli_sync.app").warning(
        "Entry %s failed", "video-1", extra={"endpoint": "normalVideos", "entry_id": "video-1"}
    )
    for handler in restore_root_logger.handlers:
        handler.flush()

    record = json.loads(config.log_path.read_text(encoding="utf-8").splitlines()[-1])
    assert record["level"] == "WARNING"
    assert record["message"] == "Entry video-1 failed"
    assert record["endpoint"] == "normalVideos"
    assert record["entry_id"] == "video-1"
    assert record["environment"] == "production"


def test_verbose_enables_debug(config, restore_root_logger):
    configure_logging(config, verbose=True)

    assert restore_root_logger.level == logging.DEBUG
