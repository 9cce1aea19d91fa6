import logging

from sociai.shared.logging_utils import LOGGER_NAME, info, timed, warning
from sociai.specs.common.enums import MediaType


def test_dimensions_are_attached(caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        info("trace-9", "render:image_done", size=12, mediaType=MediaType.IMAGE, skipped=None)
    record = caplog.records[-1]
    assert record.custom_dimensions == {"traceId": "trace-9", "size": 12, "mediaType": "image"}
    assert record.getMessage() == "render:image_done traceId=trace-9 size=12 mediaType=image"


def test_message_without_dimensions(caplog):
    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        warning(None, "brief:fallback")
    assert caplog.records[-1].getMessage() == "brief:fallback"


def test_timed_logs_duration_and_extra(caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        with timed(None, "strategy:completed", language="en") as dims:
            dims["posts"] = 3
    dims = caplog.records[-1].custom_dimensions
    assert dims["posts"] == 3
    assert dims["language"] == "en"
    assert dims["durationMs"] >= 0
