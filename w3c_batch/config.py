"""
Runtime settings: defaults, overridden by an optional YAML file, overridden
by environment variables (``.env`` is loaded first).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from .core.sitemap import MAX_DEPTH
from .plugins.w3c.checker import DEFAULT_USER_AGENT, DEFAULT_VALIDATOR_URL

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

# environment variable -> settings field
ENV_OVERRIDES = {
    "HOST": "host",
    "PORT": "port",
    "VALIDATOR_URL": "validator_url",
    "USER_AGENT": "user_agent",
    "CONCURRENCY": "concurrency",
    "DELAY_MS": "delay_ms",
    "JOB_TTL_SECONDS": "job_ttl_seconds",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(3000, ge=1, le=65535)
    validator_url: str = DEFAULT_VALIDATOR_URL
    user_agent: str = DEFAULT_USER_AGENT
    fetch_timeout: float = Field(30.0, gt=0)
    validate_timeout: float = Field(60.0, gt=0)
    concurrency: int = Field(1, ge=1)
    delay_ms: int = Field(1000, ge=0)
    max_sitemap_depth: int = Field(MAX_DEPTH, ge=0)
    job_ttl_seconds: int = Field(3600, ge=0)
    reap_interval_seconds: int = Field(300, ge=1)
    log_level: str = "INFO"

    def submission_defaults(self) -> Dict[str, Any]:
        """Defaults applied to a submission that leaves options unset."""
        return {"concurrency": self.concurrency, "inter_task_delay_ms": self.delay_ms}


def load_config(path: str) -> Dict[str, Any]:
    """Load a YAML settings file; missing files yield an empty mapping."""
    p = Path(path)
    if not p.exists():
        logger.debug(f"Config file not found: {path}")
        return {}
    with p.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def load_settings(path: Optional[str] = None) -> Settings:
    load_dotenv(find_dotenv(usecwd=True))
    config_path = path or os.getenv("W3C_BATCH_CONFIG", "config.yaml")
    data = load_config(config_path)
    for env_name, field in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data[field] = value
    return Settings.model_validate(data)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
