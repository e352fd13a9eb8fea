"""
Configuration management for Dep-Unifier.

Settings come from defaults, an optional JSON/YAML config file and
environment variable overrides, in that order.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

from .error_handling import ErrorCategory, get_error_handler
from .structured_logging import DEFAULT_LOG_FORMAT

console = Console(stderr=True)

DEFAULT_MANIFEST_NAME = "Cargo.toml"
OUTPUT_FORMATS = ("console", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ScanConfig:
    """Workspace check configuration."""

    manifest_name: str = DEFAULT_MANIFEST_NAME
    fail_on_duplicates: bool = True
    output_format: str = "console"
    output_file: Optional[str] = None
    quiet: bool = False
    verbose: bool = False


@dataclass
class SecurityConfig:
    """Limits applied when reading manifests."""

    max_file_size_mb: int = 10

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes for internal use."""
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class LoggingConfig:
    """Logging and error handling configuration."""

    log_level: str = "WARNING"
    log_format: str = DEFAULT_LOG_FORMAT
    enable_json: bool = True

    @property
    def level_number(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.WARNING)


@dataclass
class DepUnifierConfig:
    """Main configuration containing all subsections."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global configuration instance
_global_config: Optional[DepUnifierConfig] = None


def _is_valid_log_format(log_format: Any) -> bool:
    if not isinstance(log_format, str):
        return False
    try:
        logging.Formatter(log_format)
    except (TypeError, ValueError):
        return False
    return True


def validate_config_values(config: DepUnifierConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    if not config.scan.manifest_name or "/" in config.scan.manifest_name:
        errors.append("scan.manifest_name must be a plain file name")
    if config.scan.output_format not in OUTPUT_FORMATS:
        errors.append(
            f"scan.output_format must be one of: {', '.join(OUTPUT_FORMATS)}"
        )

    if config.security.max_file_size_mb <= 0:
        errors.append("security.max_file_size_mb must be positive")

    if config.logging.log_level.upper() not in LOG_LEVELS:
        errors.append(f"logging.log_level must be one of: {', '.join(LOG_LEVELS)}")

    if not _is_valid_log_format(config.logging.log_format):
        errors.append("logging.log_format must be a valid logging format string")

    return errors


def _reset_invalid_values(config: DepUnifierConfig) -> None:
    """Fall back to defaults for every setting that failed validation."""
    defaults = DepUnifierConfig()
    if not config.scan.manifest_name or "/" in config.scan.manifest_name:
        config.scan.manifest_name = defaults.scan.manifest_name
    if config.scan.output_format not in OUTPUT_FORMATS:
        config.scan.output_format = defaults.scan.output_format
    if config.security.max_file_size_mb <= 0:
        config.security.max_file_size_mb = defaults.security.max_file_size_mb
    if config.logging.log_level.upper() not in LOG_LEVELS:
        config.logging.log_level = defaults.logging.log_level
    if not _is_valid_log_format(config.logging.log_format):
        config.logging.log_format = defaults.logging.log_format


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".dep-unifier.json",
        Path.cwd() / ".dep-unifier.yaml",
        Path.cwd() / ".dep-unifier.yml",
        Path.home() / ".config" / "dep-unifier" / "config.json",
        Path.home() / ".config" / "dep-unifier" / "config.yaml",
        Path.home() / ".dep-unifier.json",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: DepUnifierConfig) -> None:
    """Load environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    def get_env_int(key: str, default: Optional[int] = None) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else default
        except ValueError:
            console.print(
                f"⚠️  Invalid integer value for {key}, using default", style="yellow"
            )
            return default

    if manifest_name := os.environ.get("DEP_UNIFIER_MANIFEST_NAME"):
        config.scan.manifest_name = manifest_name
    if output_format := os.environ.get("DEP_UNIFIER_OUTPUT_FORMAT"):
        config.scan.output_format = output_format.lower()
    config.scan.fail_on_duplicates = get_env_bool(
        "DEP_UNIFIER_FAIL_ON_DUPLICATES", config.scan.fail_on_duplicates
    )

    if max_file_size := get_env_int("DEP_UNIFIER_MAX_FILE_SIZE_MB"):
        config.security.max_file_size_mb = max_file_size

    if log_level := os.environ.get("DEP_UNIFIER_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    if not isinstance(section_data, dict):
        console.print(
            f"⚠️  Config section {section_name} must be a mapping", style="yellow"
        )
        return

    for key, value in section_data.items():
        if hasattr(config, key) and not isinstance(
            getattr(type(config), key, None), property
        ):
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def load_config(config_path: Optional[Path] = None) -> DepUnifierConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None and config_path is None:
        return _global_config

    config = DepUnifierConfig()

    config_file = config_path or find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if file_config:
            for section_name in ("scan", "security", "logging"):
                if section_name in file_config:
                    apply_config_section(
                        getattr(config, section_name),
                        file_config[section_name],
                        section_name,
                    )

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
            get_error_handler().warning(
                ErrorCategory.CONFIGURATION,
                error,
                "cli_config",
                "load_config",
                details={"config_file": str(config_file) if config_file else None},
                suggestions=["Run 'dep-unifier config validate' on the config file"],
            )
        console.print("Using default values for invalid settings.", style="yellow")
        _reset_invalid_values(config)

    _global_config = config
    return config


def get_config() -> DepUnifierConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration file."""
    sample_config = {
        "scan": {
            "manifest_name": DEFAULT_MANIFEST_NAME,
            "fail_on_duplicates": True,
            "output_format": "console",
        },
        "security": {
            "max_file_size_mb": 10,
        },
        "logging": {
            "log_level": "WARNING",
            "log_format": DEFAULT_LOG_FORMAT,
            "enable_json": True,
        },
    }

    return json.dumps(sample_config, indent=2)
