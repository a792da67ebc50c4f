"""
Data carried between pipeline stages.
"""

import os
from dataclasses import dataclass, field
from email.headerregistry import Address
from email.mime.multipart import MIMEMultipart
from pathlib import Path
from typing import List, Optional, Union

from ..errors import InvalidPathError

PathLike = Union[str, os.PathLike]


@dataclass
class ConverterConfig:
    target_format: str="mobi"
    executable: Optional[str]=None # None means `ebook-convert` on PATH (install: ```sudo apt install calibre```)
    extra_args: List[str]=field(default_factory=list)


@dataclass
class Settings:
    smtp_server: str
    smtp_username: str
    smtp_password: str = field(repr=False)
    from_address: str
    to_address: str
    convert_before_send: bool=False
    smtp_port: int=587
    smtp_timeout: Optional[float]=None
    max_attachment_size_mb: float=50.0
    converter: ConverterConfig=field(default_factory=ConverterConfig)


@dataclass(frozen=True)
class FileDescriptor:
    path: Path
    display_name: str
    stem: str

    @classmethod
    def from_path(cls, path: PathLike) -> "FileDescriptor":
        """Derive display name and stem from the final path component"""
        raw = os.fspath(path)
        candidate = Path(raw)

        if not raw or raw.endswith(("/", os.sep)) or candidate.name in ("", ".", ".."):
            raise InvalidPathError(f"\"{raw}\" has no file name component", path=raw)

        stem = candidate.stem
        if not stem:
            raise InvalidPathError(f"\"{raw}\" has no file stem", path=raw)

        return cls(path=candidate, display_name=candidate.name, stem=stem)


@dataclass(frozen=True)
class Attachment:
    filename: str
    media_type: str
    data: bytes = field(repr=False)

    @property
    def maintype(self) -> str:
        return self.media_type.split("/", 1)[0]

    @property
    def subtype(self) -> str:
        return self.media_type.split("/", 1)[1]


@dataclass(frozen=True)
class OutgoingMessage:
    sender: Address
    recipient: Address
    subject: str
    body_text: str
    attachment: Attachment
    mime: Optional[MIMEMultipart] = field(default=None, repr=False, compare=False) # filled in by compose()
