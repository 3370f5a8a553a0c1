"""
Configuration loader for the OpenAPI MCP bridge.

Loads settings from config.yaml. Environment variables are used ONLY for secrets
(the upstream API key). Never log secrets.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

API_KEY_ENV_VAR = "API_KEY"


class ServerConfig(BaseModel):
    """Identity and bind settings for the tool server."""

    name: str = Field(default="openapi-mcp-bridge", description="Server name reported to clients")
    version: str = Field(default="0.1.0", description="Server version reported to clients")
    host: str = Field(default="127.0.0.1", description="Host to bind to (http transport)")
    port: int = Field(default=8000, description="Port to bind to (http transport)")


class HttpConfig(BaseModel):
    """Outbound HTTP settings shared by every binding style."""

    request_timeout: float = Field(
        default=30.0, gt=0, description="Deadline in seconds for one proxied tool call"
    )
    document_timeout: float = Field(
        default=30.0, gt=0, description="Deadline in seconds for the OpenAPI document fetch"
    )
    attach_api_key: bool = Field(
        default=True, description="Attach the API key header to proxied calls when a key is set"
    )
    api_key_header: str = Field(default="x-api-key", description="Header carrying the API key")


class SandboxConfig(BaseModel):
    """Configuration for the static sandbox tool binding."""

    api_base: str = Field(
        default="http://localhost:3000", description="Base URL of the sandbox HTTP API"
    )


class Config(BaseModel):
    """Main configuration object."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    log_level: str = Field(default="INFO", description="Logging level")
    enable_pretty_print: bool = Field(
        default=False, description="Enable custom pretty print for debugging"
    )
    save_to_file: bool = Field(default=False, description="Save logs to file")
    log_file_path: str = Field(default="bridge.log", description="Log file path (relative to root)")
    max_log_file_size: int = Field(
        default=10485760, description="Max log file size in bytes (10MB)"
    )
    backup_count: int = Field(default=5, description="Number of backup log files to keep")


_LOGGING_KEYS = (
    "enable_pretty_print",
    "save_to_file",
    "log_file_path",
    "max_log_file_size",
    "backup_count",
)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from YAML file.

    Environment variables are used ONLY for secrets (API keys), not configuration.

    Args:
        config_path: Path to config.yaml file. Defaults to ./config.yaml

    Returns:
        Loaded configuration object
    """
    if config_path is None:
        config_path = Path("config.yaml")

    config_data: Dict[str, Any] = {}

    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

    # Handle nested logging configuration
    if "logging" in config_data:
        logging_config = config_data.pop("logging") or {}
        if "level" in logging_config:
            config_data["log_level"] = logging_config["level"]
        for key in _LOGGING_KEYS:
            if key in logging_config:
                config_data[key] = logging_config[key]

    return Config(**config_data)


def get_api_key() -> Optional[str]:
    """Return the upstream API key from the environment, if one is set."""
    return os.environ.get(API_KEY_ENV_VAR) or None
