"""
Export and summary retrieval
"""

from .models import ExportDownload, ExportRequestState, ExportStatus, ExportSummary
from .coordinator import ExportCoordinator
from .download import save_download, directory_saver

__all__ = [
    "ExportCoordinator",
    "ExportDownload",
    "ExportRequestState",
    "ExportStatus",
    "ExportSummary",
    "save_download",
    "directory_saver",
]
