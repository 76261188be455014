"""
Configuration validation module.

Validates configuration settings on startup to catch misconfigurations early
with clear error messages.
"""

import logging
import os
from typing import List, Tuple
from urllib.parse import urlparse


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""
    pass


class ConfigValidator:
    """Validates application configuration before the client starts"""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        """
        Validate all configuration settings.

        Returns:
            Tuple of (is_valid, errors, warnings)
        """
        self.errors.clear()
        self.warnings.clear()

        self._validate_api_config()
        self._validate_endpoints()
        self._validate_export_config()
        self._validate_logging_config()

        is_valid = len(self.errors) == 0
        return is_valid, self.errors.copy(), self.warnings.copy()

    def _validate_api_config(self):
        """Validate the service URL and timeout"""
        from config import API_CONFIG

        base_url = API_CONFIG.get("base_url", "")
        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https"):
            self.errors.append(f"API base URL must use http or https: {base_url!r}")
        elif not parsed.hostname:
            self.errors.append(f"API base URL has no host: {base_url!r}")
        elif parsed.scheme == "http" and parsed.hostname not in ("localhost", "127.0.0.1", "::1"):
            self.warnings.append(f"API base URL {base_url} is not using HTTPS")

        timeout = API_CONFIG.get("request_timeout")
        if timeout is not None:
            if timeout <= 0:
                self.errors.append(f"Request timeout must be positive, got {timeout}")
            elif timeout < 5:
                self.warnings.append(f"Request timeout {timeout}s is short for assistant responses")

    def _validate_endpoints(self):
        """Validate endpoint templates carry the placeholders the client fills"""
        from config import API_ENDPOINTS

        required_placeholders = {
            "create_session": [],
            "send_message": ["{session_id}"],
            "export": ["{session_id}", "{export_format}"],
            "summary": ["{session_id}"],
        }

        for name, placeholders in required_placeholders.items():
            path = API_ENDPOINTS.get(name)
            if not path:
                self.errors.append(f"Missing API endpoint: {name}")
                continue
            if not path.startswith("/"):
                self.errors.append(f"API endpoint {name} must start with '/': {path!r}")
            for placeholder in placeholders:
                if placeholder not in path:
                    self.errors.append(f"API endpoint {name} is missing {placeholder}: {path!r}")

    def _validate_export_config(self):
        """Validate export formats and filename pattern"""
        from config import EXPORT_CONFIG

        formats = EXPORT_CONFIG.get("formats", {})
        if not formats:
            self.errors.append("No export formats configured")

        for name, kind in formats.items():
            if kind not in ("binary", "structured"):
                self.errors.append(f"Export format {name} has unknown kind {kind!r}")

        pattern = EXPORT_CONFIG.get("filename_pattern", "")
        try:
            pattern.format(session_id="s", date="2000-01-01", export_format="pdf")
        except (KeyError, IndexError, ValueError) as e:
            self.errors.append(f"Invalid export filename pattern {pattern!r}: {e}")

        download_dir = EXPORT_CONFIG.get("download_dir")
        if download_dir and os.path.exists(download_dir) and not os.path.isdir(download_dir):
            self.errors.append(f"Export directory {download_dir} exists but is not a directory")

    def _validate_logging_config(self):
        """Validate logging configuration"""
        from config import LOGGING_CONFIG

        log_level = str(LOGGING_CONFIG.get("log_level", "INFO")).upper()
        if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            self.errors.append(f"Invalid log level: {log_level}")

        if LOGGING_CONFIG.get("max_log_size_mb", 10) <= 0:
            self.errors.append("max_log_size_mb must be positive")

        if LOGGING_CONFIG.get("backup_count", 5) < 0:
            self.errors.append("backup_count cannot be negative")

        if LOGGING_CONFIG.get("enable_file_logging", True):
            log_dir = LOGGING_CONFIG.get("log_dir", "./logs")
            if os.path.exists(log_dir) and not os.access(log_dir, os.W_OK):
                self.errors.append(f"Log directory {log_dir} is not writable")


def validate_startup_config() -> List[str]:
    """
    Validate configuration before starting the application.

    Returns:
        List of warnings

    Raises:
        ConfigValidationError: If any configuration error was found
    """
    validator = ConfigValidator()
    is_valid, errors, warnings = validator.validate_all()

    logger = logging.getLogger(__name__)
    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")

    if not is_valid:
        raise ConfigValidationError("; ".join(errors))

    return warnings
