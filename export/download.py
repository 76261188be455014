"""
Saving exported files to the local download directory
"""

from pathlib import Path
from typing import Callable, Optional, Union

from config import EXPORT_CONFIG
from core.logging_config import get_logger
from security import InputSanitizer
from .models import ExportDownload

logger = get_logger(__name__)


def save_download(download: ExportDownload, directory: Optional[Union[str, Path]] = None) -> Path:
    """
    Write a downloaded export to disk.

    Existing files are not overwritten; a numeric suffix is added instead.

    Raises:
        InputValidationError: If the filename is not safe to write
        OSError: If the file cannot be written
    """
    target_dir = Path(directory or EXPORT_CONFIG["download_dir"])
    target_dir.mkdir(parents=True, exist_ok=True)

    filename = InputSanitizer.validate_filename(download.filename)
    path = target_dir / filename
    stem, suffix = path.stem, path.suffix
    counter = 1
    while path.exists():
        path = target_dir / f"{stem}_{counter}{suffix}"
        counter += 1

    path.write_bytes(download.content)
    logger.info(f"Saved export to {path} ({len(download.content)} bytes)")
    return path


def directory_saver(directory: Optional[Union[str, Path]] = None,
                    on_saved: Optional[Callable[[Path], None]] = None) -> Callable[[ExportDownload], None]:
    """Build a download handler for ExportCoordinator that saves into directory"""
    def handler(download: ExportDownload):
        path = save_download(download, directory)
        if on_saved:
            on_saved(path)

    return handler
