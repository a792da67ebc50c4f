"""
Connectivity and configuration validation for skindle.
Tests the config file, the external converter and SMTP authentication.
"""

import subprocess
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .config import load_config
from .errors import SkindleError
from .pipeline import CalibreConverter, MailTransmitter, Settings, parse_mailbox

@dataclass
class ValidationResult:
    """Result of a validation check"""
    success: bool
    message: str
    details: Optional[Dict[str,Any]]=None
    error: Optional[str]=None

class ConfigValidator:
    """Checks that a loaded configuration can actually deliver an ebook"""

    def __init__(self, settings: Settings, transmitter: Optional[MailTransmitter]=None):
        self.settings = settings
        self.transmitter = transmitter or MailTransmitter(port=settings.smtp_port, timeout=settings.smtp_timeout or 10)

    def _validate_addresses(self) -> ValidationResult:
        try:
            parse_mailbox(self.settings.from_address, "from_address")
            parse_mailbox(self.settings.to_address, "to_address")
        except SkindleError as e:
            return ValidationResult(
                success=False,
                message="Addresses: Invalid mailbox",
                error=str(e)
            )
        return ValidationResult(
            success=True,
            message=f"Addresses: {self.settings.from_address} -> {self.settings.to_address}"
        )

    def _validate_calibre(self) -> ValidationResult:
        """Check Calibre ebook-convert for conversion support"""
        executable = CalibreConverter(self.settings.converter).executable
        try:
            result = subprocess.run([executable, "--version"],
                                capture_output=True, text=True, timeout=10)

            if result.returncode == 0:
                version = result.stdout.split('\n')[0] if result.stdout else "Unknown"
                return ValidationResult(
                    success=True,
                    message=f"Calibre: {version}",
                    details={"version": version}
                )
            else:
                return ValidationResult(
                    success=False,
                    message="Calibre: Not accessible",
                    error=f"{executable} command failed",
                    details={"stderr": result.stderr}
                )

        except subprocess.TimeoutExpired:
            return ValidationResult(
                success=False,
                message="Calibre: Check timeout",
                error=f"{executable} command timed out"
            )
        except (FileNotFoundError, PermissionError):
            return ValidationResult(
                success=False,
                message="Calibre: Not installed",
                error=f"{executable} executable not found. Install Calibre for ebook conversion"
            )

    def _validate_email(self) -> ValidationResult:
        """Test SMTP STARTTLS session and authentication"""
        smtp_server = self.settings.smtp_server
        port = self.settings.smtp_port
        try:
            self.transmitter.check_login(smtp_server, self.settings.smtp_username, self.settings.smtp_password)
        except SkindleError as e:
            return ValidationResult(
                success=False,
                message=f"Email: {e.kind.capitalize()} failed",
                error=str(e)
            )
        return ValidationResult(
            success=True,
            message=f"Email: SMTP authenticated successfully ({smtp_server}:{port})",
            details={"server": smtp_server, "port": port, "username": self.settings.smtp_username}
        )

    def validate_all(self) -> Dict[str,ValidationResult]:
        results = {"addresses": self._validate_addresses()}
        if self.settings.convert_before_send:
            results["calibre"] = self._validate_calibre()
        results["email"] = self._validate_email()
        return results

def validate_config(config_path: Optional[str]=None) -> Dict[str,ValidationResult]:
    """Main validation function to be called by CLI"""
    try:
        settings = load_config(config_path).to_pipeline_config()
    except SkindleError as e:
        return {"config_load": ValidationResult(
            success=False,
            message="Failed to load configuration",
            error=str(e)
        )}
    results = {"config_load": ValidationResult(success=True, message="Configuration loaded successfully")}
    results.update(ConfigValidator(settings).validate_all())
    return results
