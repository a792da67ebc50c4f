"""
Send one message through an SMTP relay over STARTTLS.
Each call opens a fresh authenticated session and tears it down afterwards.
"""

import logging
import smtplib
import ssl
from typing import Callable, Optional

from ..errors import AuthError, RelayConnectionError, SendRejectedError
from .models import OutgoingMessage

logger = logging.getLogger(__name__)

SUBMISSION_PORT = 587

def _reply_text(reply) -> str:
    if isinstance(reply, bytes):
        return reply.decode("utf-8", errors="replace")
    return str(reply)

class MailTransmitter:
    def __init__(self, port: int=SUBMISSION_PORT, timeout: Optional[float]=None,
                 smtp_factory: Optional[Callable[..., smtplib.SMTP]]=None,
                 ssl_context: Optional[ssl.SSLContext]=None):
        self.port = port
        self.timeout = timeout
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.ssl_context = ssl_context

    def _connect(self, server: str) -> smtplib.SMTP:
        kwargs = {"timeout": self.timeout} if self.timeout is not None else {}
        try:
            return self.smtp_factory(server, self.port, **kwargs)
        except (smtplib.SMTPException, OSError) as e:
            raise RelayConnectionError(
                f"Failed to connect to the SMTP server \"{server}:{self.port}\": {e}", server=server
            ) from e

    def _open_session(self, server: str, username: str, password: str) -> smtplib.SMTP:
        smtp = self._connect(server)
        try:
            try:
                smtp.ehlo()
                smtp.starttls(context=self.ssl_context or ssl.create_default_context())
                smtp.ehlo()
            except (smtplib.SMTPException, OSError) as e:
                raise RelayConnectionError(
                    f"SMTP server \"{server}\" refused the STARTTLS upgrade: {e}", server=server
                ) from e

            try:
                smtp.login(username, password)
            except smtplib.SMTPResponseException as e:
                reply = _reply_text(e.smtp_error)
                raise AuthError(
                    f"SMTP server \"{server}\" rejected the credentials for \"{username}\" ({e.smtp_code}): {reply}",
                    server=server, code=e.smtp_code, reply=reply
                ) from e
            except smtplib.SMTPNotSupportedError as e:
                raise AuthError(
                    f"SMTP server \"{server}\" does not support authentication: {e}",
                    server=server, code=None, reply=str(e)
                ) from e
            except (smtplib.SMTPException, OSError) as e:
                raise RelayConnectionError(
                    f"Connection to \"{server}\" failed during authentication: {e}", server=server
                ) from e
        except Exception:
            _close(smtp)
            raise
        return smtp

    def send(self, message: OutgoingMessage, server: str, username: str, password: str) -> None:
        """Submit `message` (as rendered by compose()) in a single transaction; returns only if the relay accepted it"""
        if message.mime is None:
            raise ValueError("OutgoingMessage has no rendered MIME; build it with compose()")
        mime = message.mime
        sender = message.sender.addr_spec
        recipient = message.recipient.addr_spec

        logger.info(f"Connecting to {server}:{self.port}")
        smtp = self._open_session(server, username, password)
        try:
            refused = smtp.send_message(mime, from_addr=sender, to_addrs=[recipient])
        except smtplib.SMTPRecipientsRefused as e:
            code, reply = e.recipients.get(recipient, (None, b"recipient refused"))
            reply = _reply_text(reply)
            raise SendRejectedError(
                f"SMTP server \"{server}\" refused recipient \"{recipient}\" ({code}): {reply}",
                server=server, code=code, reply=reply
            ) from e
        except smtplib.SMTPResponseException as e:
            reply = _reply_text(e.smtp_error)
            raise SendRejectedError(
                f"SMTP server \"{server}\" rejected the message ({e.smtp_code}): {reply}",
                server=server, code=e.smtp_code, reply=reply
            ) from e
        except (smtplib.SMTPException, OSError) as e:
            raise RelayConnectionError(
                f"Sending email through \"{server}\" failed: {e}", server=server
            ) from e
        finally:
            _close(smtp)

        if refused:
            code, reply = next(iter(refused.values()))
            reply = _reply_text(reply)
            raise SendRejectedError(
                f"SMTP server \"{server}\" refused recipients {sorted(refused)} ({code}): {reply}",
                server=server, code=code, reply=reply
            )
        logger.info(f"Sent {message.attachment.filename} to {recipient} via {server}")

    def check_login(self, server: str, username: str, password: str) -> None:
        """Open, authenticate and close a session without sending anything"""
        smtp = self._open_session(server, username, password)
        _close(smtp)

def _close(smtp: smtplib.SMTP) -> None:
    try:
        smtp.quit()
    except (smtplib.SMTPException, OSError):
        smtp.close()
