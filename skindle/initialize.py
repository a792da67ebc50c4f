"""
Setup wizard for skindle configuration.

This module provides an interactive CLI wizard that asks for the SMTP relay,
the credentials and the two mailboxes, then writes config.yaml. Secrets can be
entered directly or as env:VARIABLE_NAME references.
"""

import typer
from typing import Any, Dict, Optional
from pathlib import Path
import yaml

from .errors import InvalidAddressError
from .pipeline import parse_mailbox

# Relays that offer STARTTLS on the submission port
SMTP_PROVIDERS = {
    "gmail": {"server": "smtp.gmail.com", "port": 587},
    "outlook": {"server": "smtp-mail.outlook.com", "port": 587},
    "yahoo": {"server": "smtp.mail.yahoo.com", "port": 587},
    "icloud": {"server": "smtp.mail.me.com", "port": 587},
}


def get_interactive_input(prompt: str, default: Optional[str] = None,
                         validation_func=None, password: bool = False) -> str:
    """Get interactive input with optional validation."""
    while True:
        value = typer.prompt(prompt, default=default, hide_input=password)

        if validation_func and value:
            try:
                validation_func(value)
                return value
            except ValueError as e:
                typer.echo(f"❌ {e}")
                continue

        return value


def validate_email(email: str) -> None:
    """Validate mailbox format."""
    try:
        parse_mailbox(email, "address")
    except InvalidAddressError as e:
        raise ValueError(str(e)) from e


def configure_smtp() -> Dict[str, Any]:
    """Configure the SMTP relay and credentials."""
    typer.echo("\n📧 Configure SMTP Relay")
    typer.echo("=" * 40)

    typer.echo("Email providers:")
    for i, provider in enumerate(SMTP_PROVIDERS.keys(), 1):
        typer.echo(f"{i}. {provider.title()}")

    provider_choice = typer.prompt("Select provider (Enter 0 to choose custom provider)", type=int, default=1)

    if 1 <= provider_choice <= len(SMTP_PROVIDERS):
        provider = list(SMTP_PROVIDERS.keys())[provider_choice - 1]
        smtp_server = SMTP_PROVIDERS[provider]["server"]
        port = SMTP_PROVIDERS[provider]["port"]
    else:
        smtp_server = typer.prompt("SMTP server")
        port = typer.prompt("Port", type=int, default=587)

    username = get_interactive_input("SMTP username (usually your email address)")
    password = get_interactive_input("Enter SMTP password directly or use env:VARIABLE_NAME (e.g., 'env:SKINDLE_SMTP_PASSWORD')", password=True)

    return {
        "smtp_server": smtp_server,
        "smtp_port": port,
        "smtp_username": username,
        "smtp_password": password,
    }


def configure_addresses(username: str) -> Dict[str, Any]:
    """Configure sender and Kindle mailboxes."""
    typer.echo("\n📚 Configure Kindle Delivery")
    typer.echo("=" * 40)
    typer.echo("The sender must be on your Amazon 'Approved Personal Document E-mail List'.")

    default_sender = username if "@" in username else None
    from_address = get_interactive_input("Sender address", default=default_sender, validation_func=validate_email)
    to_address = get_interactive_input("Send-to-Kindle address (e.g., name@kindle.com)", validation_func=validate_email)

    convert_before_send = typer.confirm("Convert ebooks with Calibre before sending?", default=False)
    config = {
        "from_address": from_address,
        "to_address": to_address,
        "convert_before_send": convert_before_send,
    }
    if convert_before_send:
        target_format = typer.prompt("Target format", default="mobi")
        config["convert"] = {"target_format": target_format}
    return config


def run_setup_wizard(config_path: Path) -> None:
    """Run the complete setup wizard and write the YAML file."""
    typer.echo("🚀 skindle Setup Wizard")
    typer.echo("=" * 50)

    if config_path.exists() and not typer.confirm(f"{config_path} already exists. Overwrite?", default=False):
        raise typer.Exit(1)

    config_data = configure_smtp()
    config_data.update(configure_addresses(config_data["smtp_username"]))

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config_data, f, sort_keys=False)
    config_path.chmod(0o600)

    typer.echo("\n✅ Setup completed successfully!")
    typer.echo(f"Configuration saved to: {config_path}")
    typer.echo("\nNext steps:")
    typer.echo("1. Test connectivity: skindle check")
    typer.echo("2. Send a book: skindle send path/to/book.epub")
