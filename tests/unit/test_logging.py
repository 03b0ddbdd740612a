"""Unit tests for logging configuration, PII redaction and audit events."""

import logging
from pathlib import Path

import pytest

from saml_idp.config.schema import LoggingConfig
from saml_idp.logging_audit import (
    PIIRedactingFormatter,
    configure_logging,
    configure_logging_from_config,
    get_logger,
    get_operation_logger,
    log_audit_event,
    set_operation_log_level,
)
from saml_idp.logging_audit import logger as logger_module
from saml_idp.logging_audit.logger import BACKUP_COUNT, MAX_LOG_FILE_SIZE, OPERATION_LOGGERS


@pytest.fixture
def restore_logging(monkeypatch: pytest.MonkeyPatch):
    """Undo handler and level changes made by configure_logging."""
    monkeypatch.setattr(logger_module, "_installed_handlers", [])
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    operation_levels = {name: logging.getLogger(name).level for name in OPERATION_LOGGERS.values()}
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    for name, operation_level in operation_levels.items():
        logging.getLogger(name).setLevel(operation_level)


def format_message(formatter: logging.Formatter, message: str) -> str:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
    return formatter.format(record)


class TestPIIRedactingFormatter:
    """Test PII redaction."""

    def test_disabled_by_default(self):
        formatter = PIIRedactingFormatter(fmt="%(message)s")

        assert format_message(formatter, "user jane@example.com") == "user jane@example.com"

    def test_email_redacted(self):
        formatter = PIIRedactingFormatter(fmt="%(message)s", redact_pii=True)

        assert format_message(formatter, "user jane@example.com logged in") == (
            "user [EMAIL-REDACTED] logged in"
        )

    def test_name_id_element_redacted(self):
        formatter = PIIRedactingFormatter(fmt="%(message)s", redact_pii=True)
        message = (
            '<saml:NameID Format="urn:oasis:names:tc:SAML:2.0:nameid-format:persistent">'
            "u-1001</saml:NameID>"
        )

        redacted = format_message(formatter, message)

        assert "u-1001" not in redacted
        assert "[NAMEID-REDACTED]</saml:NameID>" in redacted

    def test_structured_fields_redacted(self):
        formatter = PIIRedactingFormatter(fmt="%(message)s", redact_pii=True)

        redacted = format_message(formatter, "AUDIT [X] | name_id=u-1001 | subject=jdoe | audience=sp")

        assert redacted == (
            "AUDIT [X] | name_id=[NAMEID-REDACTED] | subject=[NAMEID-REDACTED] | audience=sp"
        )


class TestConfigureLogging:
    """Test handler setup."""

    def test_handlers(self, restore_logging, tmp_path: Path):
        log_file = tmp_path / "nested" / "idp.log"

        configure_logging(level="WARNING", log_file=log_file)

        root = logging.getLogger()
        assert log_file.parent.is_dir()
        file_handlers = [h for h in root.handlers if hasattr(h, "maxBytes")]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == MAX_LOG_FILE_SIZE
        assert file_handlers[0].backupCount == BACKUP_COUNT
        assert file_handlers[0].level == logging.DEBUG
        assert root.level == logging.DEBUG

    def test_idempotent(self, restore_logging, tmp_path: Path):
        configure_logging(log_file=tmp_path / "idp.log")
        count = len(logging.getLogger().handlers)

        configure_logging(log_file=tmp_path / "idp.log")

        assert len(logging.getLogger().handlers) == count

    def test_reconfigure_keeps_foreign_handlers(self, restore_logging, tmp_path: Path):
        root = logging.getLogger()
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        try:
            configure_logging(log_file=tmp_path / "idp.log")
            configure_logging(log_file=tmp_path / "idp.log")

            assert foreign in root.handlers
            assert len([h for h in root.handlers if hasattr(h, "maxBytes")]) == 1
        finally:
            root.removeHandler(foreign)

    def test_env_log_file(self, restore_logging, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        log_file = tmp_path / "from-env" / "idp.log"
        monkeypatch.setenv("SAML_IDP_LOG_FILE", str(log_file))

        configure_logging()
        get_logger("saml_idp.test").info("written to the environment log file")

        assert "written to the environment log file" in log_file.read_text(encoding="utf-8")

    def test_redaction_reaches_file(self, restore_logging, tmp_path: Path):
        log_file = tmp_path / "idp.log"
        configure_logging_from_config(LoggingConfig(log_file=log_file, redact_pii=True))

        get_logger("saml_idp.test").info("issued for jane@example.com")

        content = log_file.read_text(encoding="utf-8")
        assert "[EMAIL-REDACTED]" in content
        assert "jane@example.com" not in content

    def test_invalid_level(self, restore_logging, tmp_path: Path):
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="LOUD", log_file=tmp_path / "idp.log")


class TestOperationLoggers:
    """Test per-operation loggers."""

    def test_operation_logger_names(self):
        assert get_operation_logger("signing").name == "saml_idp.saml.signer"
        assert get_operation_logger("verification").name == "saml_idp.saml.verifier"
        assert get_operation_logger("response").name == "saml_idp.saml.response_builder"

    def test_unknown_operation(self):
        with pytest.raises(ValueError, match="Unknown operation"):
            get_operation_logger("decoding")

    def test_set_operation_log_level(self, restore_logging):
        set_operation_log_level("encryption", "debug")

        assert logging.getLogger("saml_idp.saml.encryptor").level == logging.DEBUG

    def test_set_invalid_level(self, restore_logging):
        with pytest.raises(ValueError):
            set_operation_log_level("assertion", "LOUD")


class TestAuditEvents:
    """Test audit line format."""

    def test_field_order(self, caplog):
        with caplog.at_level(logging.INFO, logger="saml_idp.logging_audit.audit"):
            log_audit_event("ASSERTION_ISSUED", {
                "audience": "https://sp.example",
                "extra": "value",
                "status": "success",
                "assertion_id": "_abc",
                "duration": 0.25,
                "correlation_id": "c-1",
            })

        assert caplog.records[-1].getMessage() == (
            "AUDIT [ASSERTION_ISSUED] | status=success | assertion_id=_abc | "
            "audience=https://sp.example | duration=0.250s | correlation_id=c-1 | extra=value"
        )
        assert caplog.records[-1].levelno == logging.INFO

    def test_failure_logged_as_error(self, caplog):
        with caplog.at_level(logging.INFO, logger="saml_idp.logging_audit.audit"):
            log_audit_event("SIGNATURE_VERIFIED", {"status": "failure", "error_message": "bad"})

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "error_message=bad" in record.getMessage()

    def test_correlation_id_generated(self, caplog):
        with caplog.at_level(logging.INFO, logger="saml_idp.logging_audit.audit"):
            log_audit_event("RESPONSE_ISSUED", {"status": "success"})

        assert "correlation_id=" in caplog.records[-1].getMessage()
        assert "timestamp" not in caplog.records[-1].getMessage()

    def test_details_not_mutated(self):
        details = {"status": "success"}

        log_audit_event("RESPONSE_ISSUED", details)

        assert details == {"status": "success"}
