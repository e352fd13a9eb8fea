"""
Integration tests for dep-unifier.
Tests complete workspace checks on real directory trees, configuration
loading and error reporting.
"""

import json
import logging
import os

import pytest

from conftest import write_manifest
from src.dep_unifier.analyzer import check_workspace
from src.dep_unifier.cli_config import (
    create_sample_config,
    get_config,
    load_config,
    reset_config,
    validate_config_values,
)
from src.dep_unifier.error_handling import (
    ErrorCategory,
    ManifestIOError,
    MissingRequiredFieldError,
    get_error_handler,
    setup_error_handling,
)
from src.dep_unifier.structured_logging import (
    DEFAULT_LOG_FORMAT,
    StructuredFormatter,
    configure_logging,
    get_manifest_logger,
    get_workspace_logger,
)


class TestEndToEndScenarios:
    """Test complete workspace checks on disk."""

    def test_member_pin_alongside_workspace_table(self, duplicated_workspace):
        result = check_workspace(duplicated_workspace)

        assert result.analysis.duplicates == {"serde"}
        assert result.analysis.occurrences["serde"] == ["[workspace]", "b"]

    def test_all_members_inherit(self, clean_workspace):
        result = check_workspace(clean_workspace)

        assert result.has_workspace
        assert result.analysis.duplicates == set()

    def test_mixed_literal_and_wildcard_members(self, temp_dir):
        write_manifest(
            temp_dir,
            """
            [workspace]
            members = ["tools/cli", "crates/*"]

            [workspace.dependencies]
            tokio = { version = "1", features = ["full"] }
            """,
        )
        write_manifest(
            temp_dir / "tools" / "cli",
            """
            [package]
            name = "cli"

            [dependencies]
            clap = "4"
            tokio = { workspace = true, features = ["macros"] }
            core = { path = "../../crates/core" }
            """,
        )
        write_manifest(
            temp_dir / "crates" / "core",
            """
            [package]
            name = "core-lib"

            [dependencies]
            clap = { version = "4", default-features = false }
            """,
        )
        write_manifest(
            temp_dir / "crates" / "runtime",
            """
            [package]
            name = "runtime"

            [dependencies]
            tokio = "1.35"
            """,
        )

        result = check_workspace(temp_dir)

        # Literal members keep their pattern, wildcard members use the package name.
        assert result.members == ["core-lib", "runtime", "tools/cli"]
        assert result.analysis.sorted_duplicates() == ["clap", "tokio"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_wildcard_ignores_symlinks_and_files(self, temp_dir):
        write_manifest(
            temp_dir,
            """
            [workspace]
            members = ["crates/*"]
            """,
        )
        write_manifest(
            temp_dir / "crates" / "a",
            """
            [package]
            name = "a"

            [dependencies]
            serde = "1"
            """,
        )
        (temp_dir / "crates" / "notes.txt").write_text("not a member")
        (temp_dir / "crates" / "docs").mkdir()
        os.symlink(temp_dir / "crates" / "a", temp_dir / "crates" / "a-link")

        result = check_workspace(temp_dir)

        # Following the link would count serde twice.
        assert result.members == ["a"]
        assert result.analysis.duplicates == set()

    def test_missing_member_directory(self, temp_dir):
        write_manifest(temp_dir, '[workspace]\nmembers = ["ghost"]\n')

        with pytest.raises(ManifestIOError) as exc_info:
            check_workspace(temp_dir)

        assert "ghost" in str(exc_info.value)

    def test_missing_root_manifest(self, temp_dir):
        with pytest.raises(ManifestIOError):
            check_workspace(temp_dir)

    def test_unnamed_wildcard_member(self, temp_dir):
        write_manifest(temp_dir, '[workspace]\nmembers = ["crates/*"]\n')
        write_manifest(temp_dir / "crates" / "anon", '[dependencies]\nserde = "1"\n')

        with pytest.raises(MissingRequiredFieldError):
            check_workspace(temp_dir)


class TestConfiguration:
    """Test configuration sources and validation."""

    def test_defaults(self):
        config = get_config()

        assert config.scan.manifest_name == "Cargo.toml"
        assert config.scan.fail_on_duplicates is True
        assert config.security.max_file_size_bytes == 10 * 1024 * 1024
        assert validate_config_values(config) == []

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DEP_UNIFIER_FAIL_ON_DUPLICATES", "false")
        monkeypatch.setenv("DEP_UNIFIER_LOG_LEVEL", "debug")
        monkeypatch.setenv("DEP_UNIFIER_MAX_FILE_SIZE_MB", "2")

        config = load_config()

        assert config.scan.fail_on_duplicates is False
        assert config.logging.log_level == "DEBUG"
        assert config.security.max_file_size_mb == 2

    def test_json_config_file(self, temp_dir):
        config_path = temp_dir / "settings.json"
        config_path.write_text(
            json.dumps({"scan": {"manifest_name": "Build.toml", "output_format": "json"}})
        )

        config = load_config(config_path)

        assert config.scan.manifest_name == "Build.toml"
        assert config.scan.output_format == "json"

    def test_yaml_config_file(self, temp_dir):
        config_path = temp_dir / "settings.yaml"
        config_path.write_text("security:\n  max_file_size_mb: 3\n")

        config = load_config(config_path)

        assert config.security.max_file_size_mb == 3

    def test_invalid_values_fall_back_to_defaults(self, temp_dir):
        config_path = temp_dir / "settings.json"
        config_path.write_text(
            json.dumps(
                {"scan": {"output_format": "xml"}, "logging": {"log_level": "LOUD"}}
            )
        )

        config = load_config(config_path)

        assert config.scan.output_format == "console"
        assert config.logging.log_level == "WARNING"

    def test_invalid_log_format_falls_back(self, temp_dir):
        config_path = temp_dir / "settings.json"
        config_path.write_text(json.dumps({"logging": {"log_format": "no fields here"}}))

        config = load_config(config_path)

        assert config.logging.log_format == DEFAULT_LOG_FORMAT

    def test_invalid_values_reach_configuration_callbacks(self, temp_dir):
        handler = setup_error_handling(log_level=logging.CRITICAL)
        seen = []
        handler.register_callback(seen.append, ErrorCategory.CONFIGURATION)
        config_path = temp_dir / "settings.json"
        config_path.write_text(json.dumps({"security": {"max_file_size_mb": -1}}))

        load_config(config_path)

        assert len(seen) == 1
        assert "max_file_size_mb" in seen[0].message
        assert seen[0].details["config_file"] == str(config_path)
        assert handler.get_error_stats() == {"CONFIGURATION_WARNING": 1}

    def test_size_limit_applies_to_manifests(self, temp_dir, monkeypatch):
        monkeypatch.setenv("DEP_UNIFIER_MAX_FILE_SIZE_MB", "1")
        reset_config()
        write_manifest(temp_dir, "# " + "x" * (1024 * 1024 + 1) + "\n")

        with pytest.raises(ManifestIOError) as exc_info:
            check_workspace(temp_dir)

        assert "too large" in str(exc_info.value)

    def test_sample_config_round_trips_through_validation(self, temp_dir):
        config_path = temp_dir / "sample.json"
        config_path.write_text(create_sample_config())

        config = load_config(config_path)

        assert validate_config_values(config) == []


class TestErrorReporting:
    """Test that failures reach the central error handler before propagating."""

    def test_parse_failures_notify_callbacks(self, temp_dir):
        handler = setup_error_handling(log_level=logging.CRITICAL)
        seen = []
        handler.register_callback(seen.append, ErrorCategory.PARSING)
        write_manifest(temp_dir, "[workspace\n")

        with pytest.raises(ValueError):
            check_workspace(temp_dir)

        assert len(seen) == 1
        assert seen[0].details["file_path"].endswith("Cargo.toml")
        assert get_error_handler().get_error_stats() == {"PARSING_ERROR": 1}

    def test_failing_callback_does_not_mask_the_error(self, temp_dir):
        handler = setup_error_handling(log_level=logging.CRITICAL)

        def broken_callback(context):
            raise RuntimeError("callback failure")

        handler.register_callback(broken_callback)

        with pytest.raises(ManifestIOError):
            check_workspace(temp_dir)


class TestStructuredLogging:
    """Test the JSON log format."""

    def test_formatter_emits_extra_fields(self):
        record = logging.LogRecord(
            "dep_unifier.workspace", logging.INFO, __file__, 1, "member_skipped", None, None
        )
        record.event_type = "member_skipped"
        record.reason = "symlink"

        payload = json.loads(StructuredFormatter().format(record))

        assert payload["component"] == "dep_unifier.workspace"
        assert payload["event_type"] == "member_skipped"
        assert payload["reason"] == "symlink"

    def test_plain_text_format_uses_configured_pattern(self):
        configure_logging(
            "INFO", enable_json=False, log_format="%(levelname)s|%(message)s"
        )

        for structured in (get_manifest_logger(), get_workspace_logger()):
            assert structured.logger.level == logging.INFO
            for handler in structured.logger.handlers:
                assert not isinstance(handler.formatter, StructuredFormatter)
                assert handler.formatter._fmt == "%(levelname)s|%(message)s"

    def test_json_format_is_restored(self):
        configure_logging("INFO", enable_json=False, log_format="%(message)s")
        configure_logging("WARNING", enable_json=True)

        for handler in get_manifest_logger().logger.handlers:
            assert isinstance(handler.formatter, StructuredFormatter)
