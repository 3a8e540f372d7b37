"""Configuration management for the deploy agent."""

import json
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog
import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from deploy_agent.core.exceptions import ConfigError

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = "/etc/deploy-dashboard-agent/config.json"


class Settings(BaseSettings):
    """Agent configuration settings.

    Built once at startup and passed explicitly to the components that need
    it. Instances are frozen.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_AGENT_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Control plane
    admin_panel_url: str = Field(..., description="Admin panel base URL")
    vps_id: str = Field(..., description="Identifier of this node in the admin panel")
    api_key: str = Field(..., description="Shared bearer secret for inbound and outbound calls")
    report_interval: int = Field(30, gt=0, description="Status reporting interval in seconds")
    report_timeout: float = Field(10.0, gt=0, description="Timeout for calls to the admin panel")
    status_reporting_enabled: bool = Field(True, description="Run the periodic status reporter")

    # Server configuration
    host: str = Field("0.0.0.0", description="Server host")
    port: int = Field(9090, description="Server port")

    # Deployments
    workspace_root: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory under which per-deployment workspaces are created",
    )
    docker_binary: str = Field("docker", description="Orchestration executable")
    deploy_timeout: Optional[float] = Field(
        None,
        gt=0,
        description="Seconds before a running stack deploy is killed; unset waits indefinitely",
    )
    shutdown_grace_seconds: float = Field(
        30.0,
        ge=0,
        description="How long shutdown waits for in-flight deployments",
    )

    # Observability
    log_level: str = Field("INFO")
    log_format: str = Field("json")
    metrics_enabled: bool = Field(True)

    @field_validator("admin_panel_url")
    @classmethod
    def normalize_admin_panel_url(cls, v: str) -> str:
        """Require an http(s) URL and strip trailing slashes."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("admin_panel_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("vps_id", "api_key")
    @classmethod
    def require_non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("vps_id", mode="before")
    @classmethod
    def coerce_vps_id(cls, v: Any) -> Any:
        # Numeric ids are common in hand-written config files
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


def _normalize_key(key: str) -> str:
    return key.replace("_", "").replace("-", "").lower()


_FIELD_BY_NORMALIZED_KEY = {_normalize_key(name): name for name in Settings.model_fields}


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Read a JSON or YAML config file into a dict."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}", code="config_unreadable") from exc

    try:
        if path.suffix.lower() in (".yml", ".yaml"):
            data = yaml.safe_load(raw)
        else:
            data = json.loads(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot parse config file {path}: {exc}", code="config_invalid") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain an object", code="config_invalid")
    return data


def load_settings(path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from a config file, filling gaps from the environment.

    Keys are matched case-insensitively and without separators, so both
    ``admin_panel_url`` and ``adminPanelURL`` name the same field. Values from
    the file take precedence over ``DEPLOY_AGENT_*`` environment variables.
    Unknown keys are ignored.
    """
    path = Path(path)
    data = _read_config_file(path)

    values: Dict[str, Any] = {}
    for key, value in data.items():
        field = _FIELD_BY_NORMALIZED_KEY.get(_normalize_key(str(key)))
        if field is None:
            logger.debug("Ignoring unknown config key", key=key, path=str(path))
            continue
        values[field] = value

    try:
        settings = Settings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}", code="config_invalid") from exc

    logger.info(
        "Configuration loaded",
        path=str(path),
        vps_id=settings.vps_id,
        admin_panel_url=settings.admin_panel_url,
    )
    return settings
