"""Pydantic models with basic validations"""

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from typing import Optional, Dict, Any, List
from pathlib import Path
import yaml
from dotenv import main
import typer
import os

from .errors import ConfigError
from .pipeline import (
    Settings as Settings_,
    ConverterConfig as ConverterConfig_,
)

APP_NAME = "skindle"
CONFIG_FILENAME = "config.yaml"

def default_config_path() -> Path:
    """Platform config directory, e.g. ~/.config/skindle/config.yaml on Linux"""
    return Path(typer.get_app_dir(APP_NAME)) / CONFIG_FILENAME

def _read_reference_file(path: str) -> str:
    path = os.path.expanduser(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read().strip()
    except OSError as e:
        raise ValueError(f"Failed to load file '{path}'. Reason: {e}") from e

def _read_environment(name: str) -> str:
    value = os.getenv(name)
    if value is None:
        raise ValueError(f"Environment variable '{name}' is not set. Please check your .env file or environment variables.")
    return value

# Prefix -> reader for values that point at a secret instead of holding it
REFERENCE_PREFIXES = (
    ("file:", _read_reference_file),
    ("env:", _read_environment),
    ("var:", _read_environment),
    ("$", _read_environment),
)

def _resolve_value(value: Any) -> Any:
    if isinstance(value, str):
        for prefix, reader in REFERENCE_PREFIXES:
            if value.startswith(prefix):
                return reader(value[len(prefix):])
        return value
    if isinstance(value, dict):
        return _resolve_references(value)
    if isinstance(value, list):
        return [_resolve_value(item) for item in value]
    return value

def _resolve_references(data: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve 'file:path', 'env:NAME', 'var:NAME' and '$NAME' values, recursing into sections"""
    return {key: _resolve_value(value) for key, value in data.items()}

class ConverterConfig(BaseModel):
    model_config = ConfigDict(extra='forbid')

    target_format: str="mobi"
    executable: Optional[str]=None # Path to ebook-convert executable
    extra_args: List[str]=[]

    @field_validator('target_format')
    @classmethod
    def validate_target_format(cls, v: str) -> str:
        v = v.strip().lstrip('.').lower()
        if not v:
            raise ValueError("target_format cannot be empty.")
        return v

    def to_pipeline_config(self):
        return ConverterConfig_(
            target_format=self.target_format,
            executable=self.executable,
            extra_args=list(self.extra_args)
        )

class SkindleConfig(BaseModel):
    model_config = ConfigDict(extra='forbid') # prevent unknown fields

    smtp_server: str
    smtp_username: str
    smtp_password: str
    from_address: str
    to_address: str
    convert_before_send: bool=False
    smtp_port: int=587
    smtp_timeout: Optional[float]=None
    max_attachment_size_mb: float=50.0
    convert: ConverterConfig=ConverterConfig()

    @field_validator('smtp_server','smtp_username','smtp_password','from_address','to_address')
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        v = v.strip()
        if not v:
            raise ValueError(f"{info.field_name} cannot be empty.")
        return v

    @field_validator('smtp_port')
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            raise ValueError("Port must be an integer between 1 and 65535.")
        return v

    @field_validator('smtp_timeout')
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("smtp_timeout must be positive.")
        return v

    @field_validator('max_attachment_size_mb')
    @classmethod
    def validate_max_attachment_size_mb(cls, v: float) -> float:
        return max(0.1,v)

    @model_validator(mode="before")
    @classmethod
    def resolve_references(cls, data: Any) -> Any:
        if isinstance(data, dict):
            main.load_dotenv() # load .env file
            return _resolve_references(data)
        return data

    @classmethod
    def from_yaml(cls, path: str) -> 'SkindleConfig':
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Top level of the config file must be a mapping.")

        return cls(**data)

    def to_pipeline_config(self) -> Settings_:
        return Settings_(
            smtp_server=self.smtp_server,
            smtp_username=self.smtp_username,
            smtp_password=self.smtp_password,
            from_address=self.from_address,
            to_address=self.to_address,
            convert_before_send=self.convert_before_send,
            smtp_port=self.smtp_port,
            smtp_timeout=self.smtp_timeout,
            max_attachment_size_mb=self.max_attachment_size_mb,
            converter=self.convert.to_pipeline_config()
        )

def load_config(path: Optional[str]=None) -> SkindleConfig:
    """Load the config file, turning every failure into a ConfigError naming the file"""
    config_path = Path(path) if path else default_config_path()

    if not config_path.is_file():
        raise ConfigError(f"Config file \"{config_path}\" not found. Run `skindle init` to create one.", path=str(config_path))

    try:
        return SkindleConfig.from_yaml(str(config_path))
    except OSError as e:
        raise ConfigError(f"Failed to read the config file \"{config_path}\": {e}", path=str(config_path)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse the config file \"{config_path}\": {e}", path=str(config_path)) from e
    except ValidationError as e:
        raise ConfigError(f"Invalid config file \"{config_path}\": {e}", path=str(config_path)) from e
    except ValueError as e:
        raise ConfigError(f"Invalid config file \"{config_path}\": {e}", path=str(config_path)) from e
