"""
Tests for settings validation, structured logging and session handling.
"""
import json
import logging

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from proposal_engine.core.config import Settings
from proposal_engine.core.logging import AuditLogger, StructuredFormatter
from proposal_engine.db import session as session_module
from proposal_engine.db.models import Supplier
from proposal_engine.db.session import Base


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.TOTAL_MATCH_TOLERANCE == 0.01
        assert settings.MIN_PROPOSALS_FOR_MATRIX == 2
        assert settings.DEFAULT_WEIGHT_PRESET == "balanced"

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, TOTAL_MATCH_TOLERANCE=-1)

    def test_unknown_default_preset_rejected(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, DEFAULT_WEIGHT_PRESET="cheapest")

    def test_single_proposal_matrix_rejected(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, MIN_PROPOSALS_FOR_MATRIX=1)


class TestStructuredLogging:

    def test_formatter_emits_json_with_extras(self):
        record = logging.LogRecord("audit", logging.INFO, __file__, 1, "AUDIT: proceed", None, None)
        record.quote_id = 7
        record.action = "matrix_manual_override"

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["message"] == "AUDIT: proceed"
        assert entry["quote_id"] == 7
        assert entry["action"] == "matrix_manual_override"
        assert "entity_type" not in entry

    def test_audit_logger(self, caplog):
        with caplog.at_level(logging.INFO, logger="audit"):
            AuditLogger().log(
                action="save_decision_matrix",
                quote_id=3,
                entity_type="saved_decision_matrix",
                entity_id=11,
                details={"name": "Preço"},
            )

        record = caplog.records[-1]
        assert record.quote_id == 3
        assert "saved_decision_matrix:11" in record.getMessage()


class TestSessionContext:

    @pytest.fixture
    def session_factory(self, monkeypatch):
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        monkeypatch.setattr(session_module, "SessionLocal", factory)
        yield factory
        engine.dispose()

    def test_commits_on_success(self, session_factory):
        with session_module.get_db_context() as db:
            db.add(Supplier(name="Casa do Construtor"))

        check = session_factory()
        assert check.query(Supplier).count() == 1
        check.close()

    def test_rolls_back_on_error(self, session_factory):
        with pytest.raises(RuntimeError):
            with session_module.get_db_context() as db:
                db.add(Supplier(name="Casa do Construtor"))
                db.flush()
                raise RuntimeError("boom")

        check = session_factory()
        assert check.query(Supplier).count() == 0
        check.close()
