"""Configuration models using Pydantic for validation."""
from typing import Optional
from urllib.parse import quote
import os
import socket

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator


ENV_REMOTE_URL = "PROM_REMOTE_WRITE_URL"
ENV_REMOTE_USER = "PROM_REMOTE_WRITE_USER"
ENV_REMOTE_KEY = "PROM_REMOTE_WRITE_KEY"


class Credentials(BaseModel):
    """Remote write target and the secrets used to reach it."""
    url: str
    user: SecretStr
    key: SecretStr

    model_config = {"frozen": True}

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("remote write url must not be empty")
        return v

    @field_validator("user", "key")
    @classmethod
    def validate_secret(cls, v):
        if not v.get_secret_value():
            raise ValueError("remote write user and key must not be empty")
        return v

    def host_path(self) -> str:
        """The configured URL without an explicit https:// prefix."""
        if self.url.lower().startswith("https://"):
            return self.url[len("https://"):]
        return self.url

    def target_url(self) -> str:
        """Build the credential-embedded HTTPS URL."""
        user = quote(self.user.get_secret_value(), safe="")
        key = quote(self.key.get_secret_value(), safe="")
        return f"https://{user}:{key}@{self.host_path()}"

    def redacted_url(self) -> str:
        return f"https://***:***@{self.host_path()}"


class ScrapeConfig(BaseModel):
    """Local scrape settings. Target host and port are fixed."""
    timeout_s: Optional[float] = None


class RemoteWriteConfig(BaseModel):
    """Remote write endpoint settings."""
    url: str = ""
    user: SecretStr = SecretStr("")
    key: SecretStr = SecretStr("")
    timeout_s: Optional[float] = None

    @field_validator("url", "user", "key", mode="before")
    @classmethod
    def coerce_to_str(cls, v):
        # YAML reads numeric user ids as ints
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def credentials(self) -> Credentials:
        return Credentials(url=self.url, user=self.user, key=self.key)


class ControlAPIConfig(BaseModel):
    """Control API settings."""
    enabled: bool = True
    bind_address: str = "127.0.0.1"


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    tick_interval_s: float = 15.0
    node_name: str = Field(default_factory=socket.gethostname)
    log_level: str = "INFO"
    control_api_port: int = 8081

    @field_validator("tick_interval_s")
    @classmethod
    def validate_tick_interval(cls, v):
        if v <= 0:
            raise ValueError("tick_interval_s must be positive")
        return v

    @field_validator("node_name")
    @classmethod
    def validate_node_name(cls, v):
        if not v:
            raise ValueError("node_name must not be empty")
        return v


class Config(BaseModel):
    """Root configuration model."""
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    scrape: ScrapeConfig = Field(default_factory=ScrapeConfig)
    remote_write: RemoteWriteConfig = Field(default_factory=RemoteWriteConfig)
    control_api: ControlAPIConfig = Field(default_factory=ControlAPIConfig)

    model_config = {"populate_by_name": True}

    @model_validator(mode='after')
    def validate_remote_write(self):
        """Ensure the remote write inputs are present."""
        missing = []
        if not self.remote_write.url.strip():
            missing.append("url")
        if not self.remote_write.user.get_secret_value():
            missing.append("user")
        if not self.remote_write.key.get_secret_value():
            missing.append("key")
        if missing:
            raise ValueError(f"remote_write is missing required values: {', '.join(missing)}")
        return self

    def credentials(self) -> Credentials:
        return self.remote_write.credentials()


def _section(raw_config: dict, name: str) -> dict:
    section = raw_config.setdefault(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return section


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate configuration from a YAML file and the environment."""
    import yaml

    raw_config = {}
    if config_path is not None:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_path}")

        # A section key with no body loads as None
        for section, body in list(raw_config.items()):
            if body is None:
                raw_config[section] = {}

    # Apply environment variable overrides
    overrides = {
        "url": os.getenv(ENV_REMOTE_URL),
        "user": os.getenv(ENV_REMOTE_USER),
        "key": os.getenv(ENV_REMOTE_KEY),
    }
    for name, value in overrides.items():
        if value:
            _section(raw_config, 'remote_write')[name] = value

    if env_log_level := os.getenv('LOG_LEVEL'):
        _section(raw_config, 'global')['log_level'] = env_log_level

    try:
        return Config(**raw_config)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
