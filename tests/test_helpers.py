import logging

import pytest

from sql_to_mysql.common.helpers import format_duration
from sql_to_mysql.common.logger import Logger, logger


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "00 hours 00 minutes 00 seconds"),
        (59.6, "00 hours 01 minutes 00 seconds"),
        (3725, "01 hours 02 minutes 05 seconds"),
        (100 * 3600, "100 hours 00 minutes 00 seconds"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_file_handler_appends_and_is_added_once(tmp_path):
    path = tmp_path / "logs.txt"
    path.write_text("earlier run\n")
    logger.add_file_handler(str(path))
    logger.add_file_handler(str(path))
    handlers = [h for h in logger.logger.handlers if isinstance(h, logging.FileHandler)]
    try:
        assert len([h for h in handlers if h.baseFilename == str(path)]) == 1
        logger.success("table copied")
        for h in handlers:
            h.flush()
        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "earlier run"
        assert "[INFO] ETL - ✅ table copied" in lines[-1]
    finally:
        for h in handlers:
            logger.logger.removeHandler(h)
            h.close()


def test_instances_share_the_etl_logger():
    assert Logger().logger is logger.logger
    console = [h for h in logger.logger.handlers if type(h) is logging.StreamHandler]
    assert len(console) == 1
