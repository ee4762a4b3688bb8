"""Unit tests for structured logging and the step-narration logger."""

import json
import logging

import pytest

from keycloak_provisioner.observability.logging import (
    CorrelationIDFilter,
    ProvisioningLogger,
    StructuredFormatter,
    get_correlation_id,
    set_correlation_id,
    setup_structured_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "keycloak_provisioner.test",
        logging.INFO,
        __file__,
        1,
        "hello %s",
        ("world",),
        None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_emits_json_with_structured_fields(self):
        record = _record(step="realm", outcome="Created", correlation_id="abcd1234")

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["step"] == "realm"
        assert data["outcome"] == "Created"
        assert data["correlation_id"] == "abcd1234"

    def test_ignores_unlisted_attributes(self):
        data = json.loads(StructuredFormatter().format(_record(password="secret")))

        assert "password" not in data


class TestCorrelationId:
    def test_filter_generates_missing_id(self):
        set_correlation_id("")
        record = _record()

        assert CorrelationIDFilter().filter(record)
        assert record.correlation_id
        assert get_correlation_id() == record.correlation_id

    def test_run_start_sets_correlation_id(self):
        logger = ProvisioningLogger("test")

        corr_id = logger.log_run_start("ws1", "codewind", correlation_id="run-1")

        assert corr_id == "run-1"
        assert get_correlation_id() == "run-1"


class TestProvisioningLogger:
    def test_step_events_carry_step_and_outcome(self, caplog):
        logger = ProvisioningLogger("keycloak_provisioner.test")

        with caplog.at_level(logging.INFO, logger="keycloak_provisioner.test"):
            logger.log_step_start("client", "Checking client", client_name="c")
            logger.log_step_success("client", "Updated", 0.25)

        start, success = caplog.records
        assert start.step == "client"
        assert start.client_name == "c"
        assert success.outcome == "Updated"
        assert success.duration == 0.25

    def test_run_error_names_the_step(self, caplog):
        logger = ProvisioningLogger("keycloak_provisioner.test")

        with caplog.at_level(logging.ERROR, logger="keycloak_provisioner.test"):
            logger.log_run_error("ws1", "user", ValueError("missing"), 1.0)

        (record,) = caplog.records
        assert record.step == "user"
        assert record.error_type == "ValueError"
        assert "at step user" in record.getMessage()


class TestSetup:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_installs_single_json_handler(self):
        setup_structured_logging(log_level="DEBUG", enable_json_formatting=True)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
