"""
Convert an ebook to another format before sending, using calibre's ebook-convert.
"""

import logging
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..errors import ConversionFailedError, ConverterUnavailableError
from .models import ConverterConfig, FileDescriptor

logger = logging.getLogger(__name__)

DEFAULT_CONVERTER = "ebook-convert"

class Converter(ABC):
    @abstractmethod
    def convert(self, descriptor: FileDescriptor, target_extension: str) -> FileDescriptor:
        """Produce a new artifact in `target_extension` format. Must be implemented by subclasses."""
        pass

def _normalize_extension(extension: str) -> str:
    return extension.strip().lstrip(".").lower()

def destination_for(descriptor: FileDescriptor, target_extension: str) -> Path:
    """Temp path reusing the source stem; repeated runs overwrite the same file"""
    return Path(tempfile.gettempdir()) / f"{descriptor.stem}.{_normalize_extension(target_extension)}"

class CalibreConverter(Converter):
    def __init__(self, config: Optional[ConverterConfig]=None):
        self.config = config or ConverterConfig()

    @property
    def executable(self) -> str:
        return self.config.executable or DEFAULT_CONVERTER

    def convert(self, descriptor: FileDescriptor, target_extension: str) -> FileDescriptor:
        destination = destination_for(descriptor, target_extension)
        if destination.resolve() == descriptor.path.resolve():
            raise ConversionFailedError(
                f"Cannot convert \"{descriptor.path}\" onto itself",
                source=str(descriptor.path)
            )

        cmd = [self.executable, str(descriptor.path), str(destination), *self.config.extra_args]
        logger.info(f"Converting {descriptor.display_name} to {destination.name}")
        logger.debug(f"Running converter: {cmd}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except (FileNotFoundError, PermissionError) as e:
            raise ConverterUnavailableError(
                f"Failed to launch \"{self.executable}\". Install Calibre (it provides ebook-convert): sudo apt install calibre",
                executable=self.executable
            ) from e

        if result.returncode != 0:
            logger.debug(f"Converter stdout: {result.stdout}")
            logger.debug(f"Converter stderr: {result.stderr}")
            try:
                destination.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove partial output {destination}: {e}")
            raise ConversionFailedError(
                f"\"{self.executable}\" exited with status {result.returncode} while converting \"{descriptor.path}\"",
                source=str(descriptor.path),
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr
            )

        logger.info(f"Conversion finished: {destination}")
        return FileDescriptor.from_path(destination)
