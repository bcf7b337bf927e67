"""
Storage Service - Import file discovery and routing.

This module lists the files to import and relocates processed files into
the configured success or error directories.
"""

import os
import shutil
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from services.errors import ConfigurationError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ['.xlsx']


def collect_import_files(path: str, extensions: Sequence[str] = DEFAULT_EXTENSIONS) -> List[str]:
    """
    Resolve the files to import.

    Args:
        path: A single file, or a directory whose direct children are imported
        extensions: Accepted suffixes when ``path`` is a directory

    Returns:
        File paths in directory listing order (not sorted)
    """
    target = Path(path).resolve()

    if not target.exists():
        raise ConfigurationError(f"Data file not found: {path}")

    if not target.is_dir():
        return [str(target)]

    allowed = [e.lower() for e in extensions]
    with os.scandir(target) as entries:
        files = [
            entry.path for entry in entries
            if entry.is_file() and Path(entry.name).suffix.lower() in allowed
        ]

    logger.info(f"Found {len(files)} file(s) to import in {target}")
    return files


class StorageService:
    """
    Framework-agnostic routing of imported files.

    A directory left unset means files stay where they are.
    """

    def __init__(self, success_directory: Optional[str] = None,
                 error_directory: Optional[str] = None):
        """
        Initialize storage service.

        Args:
            success_directory: Destination for successfully imported files
            error_directory: Destination for files whose import was rolled back
        """
        self.success_directory = success_directory
        self.error_directory = error_directory

    @staticmethod
    def ensure_directory_exists(path: str):
        """Create the directory if missing; raise StorageError if it is not writable."""
        directory = Path(path)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Unable to write to: {path}") from e

        if not directory.is_dir() or not os.access(directory, os.W_OK):
            raise StorageError(f"Unable to write to: {path}")

        logger.debug(f"Storage directory ensured: {path}")

    def move_file(self, source_path: str, directory: str) -> str:
        """
        Move file into ``directory``, keeping its name.

        Returns:
            Path to moved file
        """
        self.ensure_directory_exists(directory)

        dest_path = Path(directory) / Path(source_path).name
        shutil.move(source_path, dest_path)
        logger.info(f"Moved file: {source_path} -> {dest_path}")

        return str(dest_path)

    def handle_success(self, file_path: str) -> Optional[str]:
        """Relocate a committed file, if a success directory is configured."""
        if not self.success_directory:
            return None
        return self.move_file(file_path, self.success_directory)

    def handle_failure(self, file_path: str) -> Optional[str]:
        """Relocate a rolled back file, if an error directory is configured."""
        if not self.error_directory:
            return None
        return self.move_file(file_path, self.error_directory)
