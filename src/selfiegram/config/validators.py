"""Configuration validation utilities for Selfiegram.

This module provides tools for validating configuration files
before the application uses them.
"""

from dataclasses import dataclass, field
from pathlib import Path

from selfiegram.config.loader import load_config_from_dict, read_config_file
from selfiegram.models.errors import ConfigurationError


@dataclass
class ValidationResult:
    """Validation result container."""

    success: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ConfigValidator:
    """Configuration file validator.

    Responsibilities:
    - Validate configuration file syntax (YAML)
    - Check Pydantic model validation
    - Verify configuration consistency
    """

    def validate_file(self, config_path: str | Path) -> ValidationResult:
        """Validate a configuration file.

        Args:
            config_path: Path to the configuration file

        Returns:
            ValidationResult with success status, errors and warnings
        """
        path = Path(config_path)
        if not path.is_file():
            return ValidationResult(
                success=False,
                errors=[f"Configuration file not found: {config_path}"],
            )

        try:
            config = load_config_from_dict(read_config_file(path))
        except ConfigurationError as e:
            errors = [e.message]
            for err in (e.details or {}).get("errors", []):
                errors.append(f"{err['loc']}: {err['msg']}")
            return ValidationResult(success=False, errors=errors)

        return ValidationResult(success=True, warnings=config.validate_consistency())

    def print_validation_result(self, result: ValidationResult) -> None:
        """Print validation result to stdout."""
        if result.success:
            print("Configuration is valid")
        else:
            print("Configuration has errors:")
            for error in result.errors:
                print(f"  - {error}")

        if result.warnings:
            print("\nWarnings:")
            for warning in result.warnings:
                print(f"  - {warning}")


def validate_config_command(config_path: str) -> int:
    """Entry point for the config validate command.

    Returns:
        Exit code (0=success, 1=failure)
    """
    validator = ConfigValidator()
    result = validator.validate_file(config_path)
    validator.print_validation_result(result)
    return 0 if result.success else 1
