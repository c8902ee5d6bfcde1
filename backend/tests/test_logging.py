import json
import logging
import sys

from companyintel.core.logging import JsonFormatter, bind


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("companyintel.test", logging.INFO, __file__, 1, "hello %s", ("acme",), None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_formatter_emits_structured_fields():
    line = JsonFormatter().format(_record(company="Acme Corp", connector="website", step="fetch"))
    data = json.loads(line)

    assert data["message"] == "hello acme"
    assert data["level"] == "INFO"
    assert data["company"] == "Acme Corp"
    assert data["connector"] == "website"
    assert data["timestamp"].endswith("Z")
    assert "request_id" not in data


def test_formatter_includes_exception_text():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    data = json.loads(JsonFormatter().format(record))
    assert "RuntimeError: boom" in data["exc_info"]


def test_bound_fields_merge_with_call_extra():
    records = []

    class Capture(logging.Handler):
        def emit(self, record):
            records.append(record)

    logger = logging.getLogger("companyintel.test.bind")
    logger.setLevel(logging.INFO)
    logger.addHandler(Capture())
    logger.propagate = False

    log = bind(logger, request_id="r-1", company="Acme", step="start")
    log.info("one", extra={"step": "cache"})

    assert records[0].request_id == "r-1"
    assert records[0].company == "Acme"
    assert records[0].step == "cache"
