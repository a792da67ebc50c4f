"""
Build the outgoing email: plain-text body plus the ebook as a binary attachment.
"""

import logging
import mimetypes
from dataclasses import replace
from email import encoders, policy
from email.errors import HeaderParseError, MessageError
from email.header import Header
from email.headerregistry import Address
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import Union

from ..errors import (
    AttachmentReadError,
    AttachmentTooLargeError,
    InvalidAddressError,
    MessageBuildError,
)
from .models import Attachment, FileDescriptor, OutgoingMessage, Settings

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"

# mimetypes does not know most ebook formats
EBOOK_MEDIA_TYPES = {
    "azw": "application/vnd.amazon.ebook",
    "azw3": "application/vnd.amazon.mobi8-ebook",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "epub": "application/epub+zip",
    "htm": "text/html",
    "html": "text/html",
    "kfx": "application/vnd.amazon.ebook",
    "mobi": "application/x-mobipocket-ebook",
    "pdf": "application/pdf",
    "rtf": "application/rtf",
    "txt": "text/plain",
}

def parse_mailbox(value: str, field: str) -> Address:
    """Parse `local@domain` or `Name <local@domain>` into a single mailbox"""
    if not value or not value.strip():
        raise InvalidAddressError(field, value, "empty")

    try:
        header = policy.default.header_factory("To", value.strip())
    except (HeaderParseError, IndexError, ValueError) as e:
        raise InvalidAddressError(field, value, str(e)) from e

    if header.defects:
        raise InvalidAddressError(field, value, str(header.defects[0]))
    if len(header.addresses) != 1:
        raise InvalidAddressError(field, value, "expected exactly one mailbox")

    address = header.addresses[0]
    if not address.username or not address.domain:
        raise InvalidAddressError(field, value, "expected local-part@domain")
    # Without SMTPUTF8 the local part must be ASCII; the domain goes out as IDNA
    if not address.username.isascii():
        raise InvalidAddressError(field, value, "non-ASCII local part")
    if address.domain.isascii():
        return address
    try:
        domain = address.domain.encode("idna").decode("ascii")
    except UnicodeError as e:
        raise InvalidAddressError(field, value, f"domain cannot be IDNA-encoded: {e}") from e
    return Address(display_name=address.display_name, username=address.username, domain=domain)

def media_type_for(filename: str) -> str:
    """Standard MIME type for the final artifact's extension"""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension in EBOOK_MEDIA_TYPES:
        return EBOOK_MEDIA_TYPES[extension]
    guessed, _ = mimetypes.guess_type(filename, strict=False)
    return guessed or DEFAULT_MEDIA_TYPE

def _check_header_text(name: str, text: str) -> None:
    if any(ord(c) < 32 or ord(c) == 127 for c in text):
        raise MessageBuildError(f"{name} \"{text!r}\" contains control characters")

def _read_attachment(descriptor: FileDescriptor, max_size_mb: float) -> bytes:
    path = descriptor.path
    limit = int(max_size_mb * 1024 * 1024)
    try:
        size = path.stat().st_size
        if size > limit:
            raise AttachmentTooLargeError(
                f"\"{path}\" is {size / 1024 / 1024:.1f} MB, above the {max_size_mb} MB attachment limit",
                path=str(path), size=size, limit=limit
            )
        return path.read_bytes()
    except OSError as e:
        raise AttachmentReadError(f"Failed to read the ebook file \"{path}\": {e}", path=str(path)) from e

def compose(settings: Settings, descriptor: FileDescriptor) -> OutgoingMessage:
    sender = parse_mailbox(settings.from_address, "from_address")
    recipient = parse_mailbox(settings.to_address, "to_address")

    subject = descriptor.display_name
    _check_header_text("Subject", subject)

    data = _read_attachment(descriptor, settings.max_attachment_size_mb)
    attachment = Attachment(
        filename=descriptor.display_name,
        media_type=media_type_for(descriptor.display_name),
        data=data
    )
    logger.debug(f"Composed message with {attachment.filename} ({attachment.media_type}, {len(data)} bytes)")

    message = OutgoingMessage(
        sender=sender,
        recipient=recipient,
        subject=subject,
        body_text=descriptor.display_name,
        attachment=attachment
    )
    return replace(message, mime=build_mime(message))

def _header_value(text: str) -> Union[str, Header]:
    if text.isascii():
        return text
    return Header(text, "utf-8")

def build_mime(message: OutgoingMessage) -> MIMEMultipart:
    """Render the message as multipart/mixed: text/plain body + base64 attachment"""
    attachment = message.attachment
    _check_header_text("Subject", message.subject)
    _check_header_text("Attachment filename", attachment.filename)

    try:
        msg = MIMEMultipart()
        msg["From"] = formataddr((message.sender.display_name, message.sender.addr_spec))
        msg["To"] = formataddr((message.recipient.display_name, message.recipient.addr_spec))
        msg["Subject"] = _header_value(message.subject)
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid(domain=message.sender.domain)

        msg.attach(MIMEText(message.body_text, "plain", "utf-8"))

        part = MIMEBase(attachment.maintype, attachment.subtype)
        part.set_payload(attachment.data)
        encoders.encode_base64(part)
        if attachment.filename.isascii():
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
        else:
            part.add_header("Content-Disposition", "attachment", filename=("utf-8", "", attachment.filename))
        msg.attach(part)
    except (MessageError, ValueError, UnicodeError) as e:
        raise MessageBuildError(f"Failed to build email: {e}") from e

    return msg
