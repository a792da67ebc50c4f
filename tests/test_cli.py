"""
Unit tests for the typer command-line interface.
"""

from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from skindle import main as skindle_main
from skindle import validate as skindle_validate
from skindle.cli import app
from skindle.errors import CleanupError, SendRejectedError
from skindle.pipeline import DeliveryResult, Stage
from skindle.validate import ValidationResult

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "smtp_server": "smtp.example.com",
        "smtp_username": "reader@example.com",
        "smtp_password": "hunter2",
        "from_address": "reader@example.com",
        "to_address": "reader_kindle@kindle.com",
    }), encoding="utf-8")
    return path


@pytest.fixture
def delivered(monkeypatch):
    calls = []

    def fake_deliver(settings, ebook_file):
        calls.append((settings, ebook_file))
        return DeliveryResult(success=True, stage=Stage.DONE, source_file=str(ebook_file),
                              delivered_file=Path(ebook_file).name)
    monkeypatch.setattr(skindle_main, "deliver", fake_deliver)
    return calls


def test_send_success_prints_nothing(config_file, ebook, delivered):
    result = runner.invoke(app, ["send", str(ebook), "--config", str(config_file)])

    assert result.exit_code == 0
    assert result.output == ""
    settings, ebook_file = delivered[0]
    assert ebook_file == str(ebook)
    assert settings.to_address == "reader_kindle@kindle.com"


def test_send_convert_flag_overrides_config(config_file, ebook, delivered):
    result = runner.invoke(app, ["send", str(ebook), "-c", str(config_file), "--convert"])

    assert result.exit_code == 0
    assert delivered[0][0].convert_before_send is True


def test_send_missing_file_fails_before_reading_config(tmp_path, delivered):
    result = runner.invoke(app, ["send", str(tmp_path / "missing.pdf"), "-c", str(tmp_path / "no-config.yaml")])

    assert result.exit_code == 1
    assert "Validation failed" in result.output
    assert "does not exist" in result.output
    assert delivered == []


def test_send_missing_config_fails(tmp_path, ebook, delivered):
    result = runner.invoke(app, ["send", str(ebook), "-c", str(tmp_path / "no-config.yaml")])

    assert result.exit_code == 1
    assert "Configuration failed" in result.output
    assert delivered == []


def test_send_reports_rejection(config_file, ebook, monkeypatch):
    def fake_deliver(settings, ebook_file):
        error = SendRejectedError("SMTP server \"smtp.example.com\" rejected the message (554): spam",
                                  server="smtp.example.com", code=554, reply="spam")
        return DeliveryResult(success=False, stage=Stage.TRANSMIT, source_file=str(ebook_file), error=error)
    monkeypatch.setattr(skindle_main, "deliver", fake_deliver)

    result = runner.invoke(app, ["send", str(ebook), "-c", str(config_file)])

    assert result.exit_code == 1
    assert "Transmission failed" in result.output
    assert "spam" in result.output


def test_send_warns_on_cleanup_failure_but_succeeds(config_file, ebook, monkeypatch):
    def fake_deliver(settings, ebook_file):
        return DeliveryResult(success=True, stage=Stage.DONE, source_file=str(ebook_file),
                              delivered_file="report.mobi",
                              cleanup_error=CleanupError("Failed to remove the temporary file", path="/tmp/report.mobi"))
    monkeypatch.setattr(skindle_main, "deliver", fake_deliver)

    result = runner.invoke(app, ["send", str(ebook), "-c", str(config_file)])

    assert result.exit_code == 0
    assert "Failed to remove the temporary file" in result.output


def test_check_reports_failures(monkeypatch):
    monkeypatch.setattr(skindle_validate, "validate_config", lambda path: {
        "config_load": ValidationResult(success=True, message="Configuration loaded successfully"),
        "email": ValidationResult(success=False, message="Email: Transmission failed", error="535 bad credentials"),
    })

    result = runner.invoke(app, ["check"])

    assert result.exit_code == 1
    assert "535 bad credentials" in result.output


def test_check_passes(monkeypatch):
    monkeypatch.setattr(skindle_validate, "validate_config", lambda path: {
        "config_load": ValidationResult(success=True, message="Configuration loaded successfully"),
    })

    result = runner.invoke(app, ["check"])

    assert result.exit_code == 0
    assert "Configuration test completed" in result.output


def test_init_writes_config(tmp_path):
    config_path = tmp_path / "skindle" / "config.yaml"
    answers = "\n".join([
        "1",                        # gmail
        "reader@gmail.com",         # username
        "env:SKINDLE_SMTP_PASSWORD",
        "",                         # sender defaults to username
        "reader_kindle@kindle.com",
        "n",                        # no conversion
    ]) + "\n"

    result = runner.invoke(app, ["init", "-c", str(config_path)], input=answers)

    assert result.exit_code == 0, result.output
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    assert data["smtp_server"] == "smtp.gmail.com"
    assert data["smtp_port"] == 587
    assert data["smtp_password"] == "env:SKINDLE_SMTP_PASSWORD"
    assert data["from_address"] == "reader@gmail.com"
    assert data["to_address"] == "reader_kindle@kindle.com"
    assert data["convert_before_send"] is False
