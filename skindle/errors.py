"""
Exception hierarchy for the delivery pipeline.

Every stage raises a subclass of SkindleError. The `kind` attribute names the
stage family so an operator can tell validation, conversion, composition and
transmission failures apart from the message alone.

Example:
    >>> try:
    ...     transmitter.send(message, "smtp.example.com", user, password)
    ... except SendRejectedError as e:
    ...     logger.error(f"Relay rejected the message: {e.reply}")
"""

from typing import Optional


class SkindleError(Exception):
    """Base exception for all skindle errors."""

    kind = "delivery"


class InvalidInputError(SkindleError):
    """Raised when the ebook path does not exist or is not a regular file."""

    kind = "validation"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class InvalidPathError(InvalidInputError):
    """Raised when a path has no usable final component (e.g. ends with '..' or '/')."""


class ConfigError(SkindleError):
    """
    Raised when the configuration cannot be loaded.

    This can occur due to:
    - Missing config file
    - Unparsable YAML
    - Unset environment references
    - Missing or invalid fields
    """

    kind = "configuration"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ConversionError(SkindleError):
    """Base exception for the conversion stage."""

    kind = "conversion"


class ConverterUnavailableError(ConversionError):
    """Raised when the external converter cannot be launched at all."""

    def __init__(self, message: str, executable: str):
        super().__init__(message)
        self.executable = executable


class ConversionFailedError(ConversionError):
    """
    Raised when the external converter exits with a non-zero status.

    Captured output is kept on the exception for instrumentation but is not
    part of the message.
    """

    def __init__(self, message: str, source: str, returncode: Optional[int] = None,
                 stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.source = source
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class CompositionError(SkindleError):
    """Base exception for the message composition stage."""

    kind = "composition"


class InvalidAddressError(CompositionError):
    """Raised when a configured address is not a valid mailbox."""

    def __init__(self, field: str, value: str, reason: Optional[str] = None):
        message = f"{field} \"{value}\" is not a valid email address"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.field = field
        self.value = value


class AttachmentReadError(CompositionError):
    """Raised when the artifact cannot be read into memory."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class AttachmentTooLargeError(AttachmentReadError):
    """Raised when the artifact exceeds the configured attachment size limit."""

    def __init__(self, message: str, path: str, size: int, limit: int):
        super().__init__(message, path)
        self.size = size
        self.limit = limit


class MessageBuildError(CompositionError):
    """Raised when headers or MIME parts cannot be assembled."""


class SendError(SkindleError):
    """Base exception for the transmission stage."""

    kind = "transmission"

    def __init__(self, message: str, server: str):
        super().__init__(message)
        self.server = server


class RelayConnectionError(SendError):
    """
    Raised when the message never reached the relay.

    This can occur due to:
    - DNS or socket failures
    - The relay refusing or not offering STARTTLS
    - TLS handshake failures
    - The relay dropping the connection mid-session
    """


class SendRejectedError(SendError):
    """Raised when the relay answers with a non-2xx reply."""

    def __init__(self, message: str, server: str, code: Optional[int], reply: str):
        super().__init__(message, server)
        self.code = code
        self.reply = reply


class AuthError(SendRejectedError):
    """Raised when the relay rejects the credentials."""


class CleanupError(SkindleError):
    """Raised when a temporary converted artifact cannot be removed."""

    kind = "cleanup"

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path
