"""
Tests for structured logging and the audit logger.
"""

import json
import logging

from rich.logging import RichHandler

from portability_engine.utils.logging import (
    AuditLogger,
    LogCategory,
    StructuredFormatter,
    get_logger,
    setup_logging,
)


class TestStructuredFormatter:

    def test_plain_record_becomes_json(self):
        record = logging.LogRecord(
            "portability_engine.export.pipeline", logging.WARNING, __file__, 10,
            "Export %s failed", ("export_1",), None,
        )
        record.export_id = "export_1"

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["message"] == "Export export_1 failed"
        assert data["metadata"]["logger"] == "portability_engine.export.pipeline"
        assert data["metadata"]["export_id"] == "export_1"


    def test_categories(self):
        assert [c.value for c in LogCategory] == ["system", "audit"]


class TestSetupLogging:

    def test_rich_console_handler(self):
        logger = setup_logging(level="DEBUG")
        assert logger.name == "portability_engine"
        assert logger.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in logger.handlers)

    def test_structured_file_logging(self, tmp_path):
        log_file = tmp_path / "logs" / "engine.log"
        logger = setup_logging(level="INFO", log_file=str(log_file), structured_logging=True)

        get_logger("tests").info("hello")
        for handler in logger.handlers:
            handler.flush()

        lines = log_file.read_text().strip().splitlines()
        assert json.loads(lines[-1])["message"] == "hello"
        assert not any(isinstance(h, RichHandler) for h in logger.handlers)

    def test_repeated_setup_replaces_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1


class TestAuditLogger:

    def test_events_recorded_and_filtered(self):
        audit = AuditLogger()
        audit.log_event("export.created", tenant_id="t1", entity_id="export_1", details={"format": "docker"})
        audit.log_event("export.completed", tenant_id="t1", entity_id="export_1")
        audit.log_event("export.created", tenant_id="t1", entity_id="export_2")

        created = audit.recent_events("export.created")
        assert [e.entity_id for e in created] == ["export_1", "export_2"]
        assert created[0].category == LogCategory.AUDIT
        assert created[0].metadata["details"] == {"format": "docker"}
        assert len(audit.recent_events(entity_id="export_1")) == 2

    def test_history_is_bounded(self):
        audit = AuditLogger(history_size=2)
        for i in range(5):
            audit.log_event("airgap.synced", entity_id=f"airgap_{i}")
        assert [e.entity_id for e in audit.recent_events()] == ["airgap_3", "airgap_4"]

    def test_audit_file(self, tmp_path):
        log_file = tmp_path / "audit.log"
        audit = AuditLogger(log_file=str(log_file))
        audit.logger.setLevel(logging.INFO)
        audit.log_event("migration.approved", tenant_id="t1", entity_id="migration_1")
        for handler in audit.logger.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["operation"] == "migration.approved"
        assert entry["category"] == "audit"
        for handler in list(audit.logger.handlers):
            audit.logger.removeHandler(handler)
            handler.close()
