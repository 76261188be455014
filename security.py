"""
Input validation for values that reach the local filesystem.

Export filenames come from the service's Content-Disposition header and are
checked here before anything is written to disk.
"""

import re

from core.logging_config import get_logger

logger = get_logger(__name__)


class SecurityError(Exception):
    """Raised when security validation fails"""
    pass


class InputValidationError(SecurityError):
    """Raised when input validation fails"""
    pass


class InputSanitizer:
    """Validates untrusted inputs before they are used locally"""

    MAX_LENGTHS = {
        'filename': 255,
    }

    UNSAFE_FILENAME_CHARS = r'[<>:"|?*\x00-\x1f]'

    RESERVED_NAMES = {
        'CON', 'PRN', 'AUX', 'NUL', 'COM1', 'COM2', 'COM3', 'COM4', 'COM5',
        'COM6', 'COM7', 'COM8', 'COM9', 'LPT1', 'LPT2', 'LPT3', 'LPT4',
        'LPT5', 'LPT6', 'LPT7', 'LPT8', 'LPT9'
    }

    @classmethod
    def validate_filename(cls, filename: str) -> str:
        """
        Validate a filename for safe file operations.

        Args:
            filename: Proposed filename

        Returns:
            The stripped filename

        Raises:
            InputValidationError: If filename is invalid
        """
        if not filename or not filename.strip():
            raise InputValidationError("Filename cannot be empty")

        filename = filename.strip()

        if len(filename) > cls.MAX_LENGTHS['filename']:
            raise InputValidationError(f"Filename too long: {len(filename)} > {cls.MAX_LENGTHS['filename']}")

        # Prevent directory traversal
        if '..' in filename or '/' in filename or '\\' in filename:
            raise InputValidationError("Filename cannot contain path separators or '..'")

        if re.search(cls.UNSAFE_FILENAME_CHARS, filename):
            raise InputValidationError("Filename contains unsafe characters")

        name_without_ext = filename.split('.')[0].upper()
        if name_without_ext in cls.RESERVED_NAMES:
            raise InputValidationError(f"Filename cannot be a reserved name: {filename}")

        return filename

    @classmethod
    def filename_component(cls, value: str) -> str:
        """Replace anything validate_filename would reject with '_'"""
        component = re.sub(cls.UNSAFE_FILENAME_CHARS, "_", str(value))
        component = component.replace("/", "_").replace("\\", "_")
        while ".." in component:
            component = component.replace("..", "_")
        return component.strip() or "session"

    @classmethod
    def safe_filename(cls, filename: str, fallback: str) -> str:
        """Return filename if it validates, otherwise fallback"""
        try:
            return cls.validate_filename(filename)
        except InputValidationError as e:
            logger.warning(f"Rejected filename {filename!r}: {e}")
            return fallback
