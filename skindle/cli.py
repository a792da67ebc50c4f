import typer
from pathlib import Path
from typing import Optional

app = typer.Typer(name="skindle", help="Send an ebook to your Kindle over SMTP.")

@app.command()
def send(
    ebook_file: Path = typer.Argument(..., help="Ebook file to send"),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file (default: platform config directory)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    convert: Optional[bool] = typer.Option(
        None,
        "--convert/--no-convert",
        help="Override convert_before_send from the configuration file"
    )
):
    """
    Send EBOOK_FILE to the configured Kindle address.

    Prints nothing and exits 0 on success.
    """
    from .main import run_delivery

    result = run_delivery(str(ebook_file), config_path, verbose, convert)

    if not result.success:
        for line in result.describe():
            typer.echo(f"❌ {line}", err=True)
        raise typer.Exit(1)

    if result.cleanup_error is not None:
        typer.echo(f"⚠️  Sent, but {result.cleanup_error}", err=True)

@app.command()
def check(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file"
    )
):
    """
    Test configuration, Calibre availability and SMTP authentication without sending.
    """
    from .validate import validate_config

    typer.echo("🔍 Testing configuration...")
    results = validate_config(config_path)

    failed = False
    for name, result in results.items():
        if result.success:
            typer.echo(f"   ✅ {result.message}")
        else:
            failed = True
            typer.echo(f"   ❌ {result.message}: {result.error}", err=True)

    if failed:
        raise typer.Exit(1)
    typer.echo("\n🎉 Configuration test completed!")

@app.command()
def init(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Where to write the configuration file"
    )
):
    """
    Interactive wizard that writes the configuration file.
    """
    from .config import default_config_path
    from .initialize import run_setup_wizard

    run_setup_wizard(Path(config_path) if config_path else default_config_path())

if __name__ == "__main__":
    app()
