"""Centralized configuration for hookgate."""

import os


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """
    hookgate configuration with environment variable overrides.

    All configuration values are centralized here with sensible defaults.
    Values can be overridden via environment variables.
    """

    @staticmethod
    def _parse_int(name: str, default: str) -> int:
        """Parse an integer environment variable."""
        raw = os.getenv(name, default)
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"Invalid {name} environment variable: {raw!r} is not an integer")
        return value

    # ========================================================================
    # Rules
    # ========================================================================
    CONFIG_FILE: str = os.getenv("HOOKGATE_CONFIG", ".hookgate.yaml")
    FAIL_FAST: bool = _parse_bool(os.getenv("HOOKGATE_FAIL_FAST", "false"))

    # ========================================================================
    # Logging
    # ========================================================================
    LOG_LEVEL: str = os.getenv("HOOKGATE_LOG_LEVEL", "ERROR").upper()
    LOG_FILE: str = os.getenv("HOOKGATE_LOG_FILE", "")
    LOG_ROTATION: str = "5 MB"
    LOG_RETENTION: str = "7 days"

    # ========================================================================
    # Audit Trail
    # ========================================================================
    AUDIT_LOG_PATH: str = os.getenv("HOOKGATE_AUDIT_LOG", "")
    AUDIT_ROTATION_BYTES: int = _parse_int.__func__(
        "HOOKGATE_AUDIT_ROTATION_BYTES", str(5 * 1024 * 1024)
    )
    AUDIT_RETENTION_DAYS: int = _parse_int.__func__(
        "HOOKGATE_AUDIT_RETENTION_DAYS", "30"
    )

    # ========================================================================
    # Git
    # ========================================================================
    GIT_TIMEOUT: int = _parse_int.__func__("HOOKGATE_GIT_TIMEOUT", "30")

    # ========================================================================
    # Diagnostics
    # ========================================================================
    MAX_EXCERPT_LENGTH: int = 120

    @classmethod
    def validate(cls) -> bool:
        """
        Validate configuration consistency.

        Returns:
            True if validation passes

        Raises:
            ValueError: If validation fails
        """
        errors = []

        valid_levels = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if cls.LOG_LEVEL not in valid_levels:
            errors.append(
                f"LOG_LEVEL must be one of {sorted(valid_levels)}, got {cls.LOG_LEVEL!r}"
            )

        if not cls.CONFIG_FILE:
            errors.append("CONFIG_FILE must not be empty")

        if cls.GIT_TIMEOUT <= 0:
            errors.append(f"GIT_TIMEOUT must be > 0, got {cls.GIT_TIMEOUT}")

        if cls.AUDIT_ROTATION_BYTES <= 0:
            errors.append(f"AUDIT_ROTATION_BYTES must be > 0, got {cls.AUDIT_ROTATION_BYTES}")

        # 0 disables retention cleanup
        if cls.AUDIT_RETENTION_DAYS < 0:
            errors.append(
                f"AUDIT_RETENTION_DAYS must be >= 0, got {cls.AUDIT_RETENTION_DAYS}"
            )

        if cls.MAX_EXCERPT_LENGTH <= 0:
            errors.append(f"MAX_EXCERPT_LENGTH must be > 0, got {cls.MAX_EXCERPT_LENGTH}")

        if errors:
            raise ValueError(f"Config validation failed: {'; '.join(errors)}")

        return True
