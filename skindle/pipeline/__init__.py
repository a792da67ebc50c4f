"""
Core components of the delivery pipeline.
"""

from .models import Settings, ConverterConfig, FileDescriptor, Attachment, OutgoingMessage
from .convert import Converter, CalibreConverter, destination_for
from .compose import compose, build_mime, parse_mailbox, media_type_for
from .transmit import MailTransmitter
from .deliver import deliver, validate_ebook_file, DeliveryResult, Stage

__all__ = [name for name in globals() if not name.startswith('__')]
