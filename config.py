"""
Centralized configuration for the course design assistant client
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _optional_float(name):
    value = os.getenv(name, "").strip()
    return float(value) if value else None


# Remote service
API_CONFIG = {
    "base_url": os.getenv("COURSE_ASSISTANT_API_URL", "http://localhost:5000"),
    "request_timeout": _optional_float("COURSE_ASSISTANT_TIMEOUT"),  # None = wait for the server
    "service_name": "course_assistant",
}

# API endpoints (relative to base_url)
API_ENDPOINTS = {
    "create_session": "/api/conversations",
    "send_message": "/api/conversations/{session_id}/messages",
    "export": "/api/conversations/{session_id}/export/{export_format}",
    "summary": "/api/conversations/{session_id}/summary",
}

# Headers for API requests
API_HEADERS = {
    "Content-Type": "application/json",
}

# User-facing texts
MESSAGES = {
    "connection_error": "Sorry, I encountered a connection error. Please try again.",
    "generic_error": "Sorry, I encountered an error. Please try again.",
    "offline_notice": "You appear to be offline. Please check your internet connection.",
    "no_session_export": "No active session to export",
    "export_failed": "Export failed",
    "export_transport_failed": "Failed to export data",
    "export_json_success": "Data exported successfully",
    "export_download_success": "{format} file downloaded successfully",
    "summary_failed": "Failed to get summary",
    "summary_success": "Summary generated successfully",
}

# Export settings
EXPORT_CONFIG = {
    "formats": {
        "pdf": "binary",
        "csv": "binary",
        "json": "structured",
    },
    "filename_pattern": "course_design_{session_id}_{date}.{export_format}",
    "download_dir": os.getenv("EXPORT_DIR", "./exports"),
}

# Connectivity settings
CONNECTIVITY_CONFIG = {
    "probe_on_start": os.getenv("CONNECTIVITY_PROBE", "true").lower() == "true",
    "probe_timeout": 3.0,  # seconds, at startup and after connection errors
}

# Display settings
DISPLAY_CONFIG = {
    "colors": {
        "user": "\033[96m",       # Cyan
        "assistant": "\033[92m",  # Green
        "warning": "\033[93m",    # Yellow
        "error": "\033[91m",      # Red
        "info": "\033[94m",       # Blue
        "muted": "\033[90m",      # Grey
        "reset": "\033[0m"
    },
    "emojis": {
        "user": "🧑",
        "assistant": "🤖",
        "online": "📶",
        "offline": "🚫",
        "error": "❌",
        "success": "✅",
        "safety": "🛡️",
        "export": "📥"
    },
    "safety_preview_chars": 100,
}

# Logging configuration
LOGGING_CONFIG = {
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "log_dir": os.getenv("LOG_DIR", "./logs"),
    "enable_file_logging": os.getenv("ENABLE_FILE_LOGGING", "true").lower() == "true",
    "enable_console_logging": os.getenv("ENABLE_CONSOLE_LOGGING", "true").lower() == "true",
    "structured_logging": os.getenv("ENVIRONMENT", "development").lower() == "production",
    "max_log_size_mb": int(os.getenv("MAX_LOG_SIZE_MB", "10")),
    "backup_count": int(os.getenv("LOG_BACKUP_COUNT", "5")),
}
