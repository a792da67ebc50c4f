"""
Delivery pipeline: validate -> [convert] -> compose -> transmit -> [cleanup].
One ebook per call, strictly sequential. The first failing stage ends the run.
"""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Union

from ..errors import CleanupError, InvalidInputError, SkindleError
from .compose import compose
from .convert import CalibreConverter, Converter
from .models import FileDescriptor, Settings
from .transmit import MailTransmitter

logger = logging.getLogger(__name__)

class Stage(str, Enum):
    VALIDATE = "validation"
    CONFIGURE = "configuration"
    CONVERT = "conversion"
    COMPOSE = "composition"
    TRANSMIT = "transmission"
    DONE = "done"

@dataclass
class DeliveryResult:
    success: bool
    stage: Stage
    source_file: str
    delivered_file: Optional[str]=None
    error: Optional[SkindleError]=None
    cleanup_error: Optional[CleanupError]=None

    def describe(self) -> List[str]:
        """Operator-facing lines, primary failure first"""
        lines = []
        if self.error is not None:
            lines.append(f"{self.stage.value.capitalize()} failed: {self.error}")
        if self.cleanup_error is not None:
            lines.append(f"Cleanup failed: {self.cleanup_error}")
        return lines

def validate_ebook_file(ebook_file: Union[str, os.PathLike]) -> None:
    path = Path(ebook_file)
    try:
        exists = path.exists()
    except OSError as e:
        raise InvalidInputError(f"Failed to check if the ebook file \"{path}\" exists: {e}", path=str(path)) from e
    if not exists:
        raise InvalidInputError(f"Ebook file \"{path}\" does not exist", path=str(path))
    if not path.is_file():
        raise InvalidInputError(f"\"{path}\" is not a file", path=str(path))

def _remove_artifact(descriptor: FileDescriptor) -> Optional[CleanupError]:
    try:
        descriptor.path.unlink(missing_ok=True)
        logger.debug(f"Removed temporary file {descriptor.path}")
        return None
    except OSError as e:
        logger.debug(f"Failed to remove temporary file {descriptor.path}: {e}")
        return CleanupError(f"Failed to remove the temporary file \"{descriptor.path}\": {e}", path=str(descriptor.path))

@contextmanager
def _temporary_artifact(descriptor: FileDescriptor, outcome: dict) -> Iterator[FileDescriptor]:
    """Removes the converted file exactly once when the block exits, however it exits"""
    try:
        yield descriptor
    finally:
        outcome["cleanup_error"] = _remove_artifact(descriptor)

def _compose_and_send(settings: Settings, descriptor: FileDescriptor, source_file: str,
                      transmitter: MailTransmitter) -> DeliveryResult:
    stage = Stage.COMPOSE
    try:
        message = compose(settings, descriptor)
        stage = Stage.TRANSMIT
        transmitter.send(message, settings.smtp_server, settings.smtp_username, settings.smtp_password)
    except SkindleError as e:
        logger.debug(f"{stage.value.capitalize()} failed for {descriptor.display_name}: {e}")
        return DeliveryResult(success=False, stage=stage, source_file=source_file,
                              delivered_file=None, error=e)
    return DeliveryResult(success=True, stage=Stage.DONE, source_file=source_file,
                          delivered_file=descriptor.display_name)

def deliver(settings: Settings, ebook_file: Union[str, os.PathLike],
            converter: Optional[Converter]=None,
            transmitter: Optional[MailTransmitter]=None) -> DeliveryResult:
    """Main entry point - sends one ebook to settings.to_address"""
    source_file = os.fspath(ebook_file)
    transmitter = transmitter or MailTransmitter(port=settings.smtp_port, timeout=settings.smtp_timeout)

    try:
        validate_ebook_file(ebook_file)
        descriptor = FileDescriptor.from_path(ebook_file)
    except SkindleError as e:
        logger.debug(f"Validation failed: {e}")
        return DeliveryResult(success=False, stage=Stage.VALIDATE, source_file=source_file, error=e)

    if not settings.convert_before_send:
        logger.debug("Conversion disabled, sending the original file")
        return _compose_and_send(settings, descriptor, source_file, transmitter)

    converter = converter or CalibreConverter(settings.converter)
    try:
        converted = converter.convert(descriptor, settings.converter.target_format)
    except SkindleError as e:
        logger.debug(f"Conversion failed: {e}")
        return DeliveryResult(success=False, stage=Stage.CONVERT, source_file=source_file, error=e)

    outcome = {}
    with _temporary_artifact(converted, outcome):
        result = _compose_and_send(settings, converted, source_file, transmitter)
    result.cleanup_error = outcome.get("cleanup_error")
    return result
