"""
Test configuration, logging setup and diagnostics collection.
"""

import pytest
from pydantic import ValidationError

from edinet_extractor.core.config import AppSettings, ExtractionOptions, get_settings
from edinet_extractor.core.error_handling import (
    DiagnosticKind,
    DiagnosticsCollector,
    DocumentParseError,
    ErrorSeverity,
    ExtractionError,
)
from edinet_extractor.core.logging import configure_logging, get_logger


class TestConfiguration:
    """Test configuration management."""

    def test_settings_loading(self, test_settings):
        """Test that settings are loaded correctly."""
        assert test_settings.name == "edinet-statement-extractor"
        assert test_settings.version == "0.1.0"
        assert test_settings.debug is True

    def test_logging_settings(self, test_settings):
        assert test_settings.logging.level == "DEBUG"
        assert test_settings.logging.log_dir is None

    def test_fiscal_settings(self, test_settings):
        assert test_settings.fiscal.policy == "year_window"
        assert test_settings.fiscal.reference_year == 2024
        assert test_settings.fiscal.current_window_years == 2
        assert test_settings.fiscal.previous_window_years == 4

    def test_classification_defaults(self, test_settings):
        weights = test_settings.classification
        assert weights.threshold == 3
        assert (weights.heading_weight, weights.text_weight, weights.fact_weight) == (3, 2, 5)
        assert weights.statement_type_weight == 100

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("EXTRACTOR_MAX_FALLBACK_TABLES", "2")
        monkeypatch.setenv("EXTRACTOR_CLASSIFY_THRESHOLD", "7")
        get_settings.cache_clear()
        try:
            settings = get_settings()
            assert settings.extraction.max_fallback_tables == 2
            assert settings.classification.threshold == 7
        finally:
            monkeypatch.delenv("EXTRACTOR_MAX_FALLBACK_TABLES")
            monkeypatch.delenv("EXTRACTOR_CLASSIFY_THRESHOLD")
            get_settings.cache_clear()


class TestExtractionOptions:
    """Test per-call extraction options."""

    def test_defaults_follow_settings(self, test_settings):
        options = ExtractionOptions.from_settings(test_settings)
        assert options.intelligent_selection is True
        assert options.context_aware is True
        assert options.max_fallback_tables == 5
        assert options.max_walk_depth == 8

    def test_overrides(self):
        options = ExtractionOptions.from_settings(AppSettings(), intelligent_selection=False, max_walk_depth=3)
        assert options.intelligent_selection is False
        assert options.max_walk_depth == 3

    def test_options_are_frozen(self):
        options = ExtractionOptions()
        with pytest.raises(ValidationError):
            options.context_aware = False

    def test_negative_depth_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionOptions(max_walk_depth=-1)


class TestLogging:
    """Test structured logging setup."""

    def test_logger_creation(self):
        """Test logger creation and basic functionality."""
        logger = get_logger("edinet_extractor.test")
        assert logger is not None

        # Test context binding
        bound_logger = logger.bind(document_id="E00001", stage="test")
        assert bound_logger is not None

    def test_file_logging(self, tmp_path):
        """A configured log directory receives a rotating log file."""
        log_dir = tmp_path / "logs"
        try:
            configure_logging(log_level="DEBUG", log_dir=str(log_dir))
            get_logger("edinet_extractor.test").info("test.message", extra_field="value")
            assert (log_dir / "extractor.log").exists()
        finally:
            configure_logging(log_level="DEBUG")


class TestDiagnostics:
    """Test diagnostics collection."""

    def test_record_uses_default_severity(self):
        collector = DiagnosticsCollector()
        diagnostic = collector.record(DiagnosticKind.UNRESOLVED_REFERENCE, "missing", reference="c-1")

        assert diagnostic.severity == ErrorSeverity.LOW
        assert diagnostic.detail("reference") == "c-1"
        assert diagnostic.detail("unknown", "n/a") == "n/a"
        assert collector.count(DiagnosticKind.UNRESOLVED_REFERENCE) == 1

    def test_record_failure(self):
        collector = DiagnosticsCollector()
        diagnostic = collector.record_failure("table", ValueError("boom"), table_id="table-3")

        assert diagnostic.kind == DiagnosticKind.STAGE_FAILURE
        assert diagnostic.severity == ErrorSeverity.HIGH
        assert diagnostic.detail("error_type") == "ValueError"
        assert diagnostic.detail("table_id") == "table-3"

    def test_freeze(self):
        collector = DiagnosticsCollector()
        collector.record(DiagnosticKind.STRUCTURAL_ABSENCE, "nothing found")
        collector.record(DiagnosticKind.INHERITED_CONTEXT, "inherited", severity=ErrorSeverity.MEDIUM)

        diagnostics = collector.freeze(file_type="html", fact_count=3)

        assert diagnostics.file_type == "html"
        assert diagnostics.fact_count == 3
        assert diagnostics.has_warnings
        assert diagnostics.warnings == ["nothing found", "inherited"]
        assert diagnostics.count(DiagnosticKind.STRUCTURAL_ABSENCE) == 1
        assert diagnostics.of_kind(DiagnosticKind.INHERITED_CONTEXT)[0].severity == ErrorSeverity.MEDIUM

        exported = diagnostics.to_dict()
        assert exported["issues"][0]["kind"] == "structural_absence"
        assert exported["issues"][1]["severity"] == "medium"

    def test_parse_error_hierarchy(self):
        error = DocumentParseError("broken")
        assert isinstance(error, ExtractionError)
        assert error.severity == ErrorSeverity.HIGH
