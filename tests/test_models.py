"""
Unit tests for FileDescriptor and the pipeline data types.
"""

from pathlib import Path

import pytest

from skindle.errors import InvalidInputError, InvalidPathError
from skindle.pipeline import Attachment, FileDescriptor, Settings


def test_from_path_derives_names():
    descriptor = FileDescriptor.from_path("/books/report.pdf")
    assert descriptor.path == Path("/books/report.pdf")
    assert descriptor.display_name == "report.pdf"
    assert descriptor.stem == "report"


def test_from_path_strips_only_last_extension():
    descriptor = FileDescriptor.from_path(Path("archive/book.tar.gz"))
    assert descriptor.display_name == "book.tar.gz"
    assert descriptor.stem == "book.tar"


def test_from_path_without_extension():
    descriptor = FileDescriptor.from_path("README")
    assert descriptor.display_name == "README"
    assert descriptor.stem == "README"


@pytest.mark.parametrize("path", ["/books/..", "/books/", "/", "", "."])
def test_from_path_rejects_paths_without_file_name(path):
    with pytest.raises(InvalidPathError) as excinfo:
        FileDescriptor.from_path(path)
    assert isinstance(excinfo.value, InvalidInputError)
    assert excinfo.value.kind == "validation"


def test_settings_repr_hides_password():
    settings = Settings(
        smtp_server="smtp.example.com",
        smtp_username="reader",
        smtp_password="hunter2",
        from_address="reader@example.com",
        to_address="reader@kindle.com",
    )
    assert "hunter2" not in repr(settings)
    assert settings.smtp_port == 587
    assert settings.convert_before_send is False
    assert settings.converter.target_format == "mobi"


def test_attachment_media_type_parts():
    attachment = Attachment(filename="book.epub", media_type="application/epub+zip", data=b"x")
    assert attachment.maintype == "application"
    assert attachment.subtype == "epub+zip"
