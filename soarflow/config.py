from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .constants import DEFAULT_ASSIGNEE


class StatisticsConfig(BaseModel):
    """Policy-level estimates reported alongside measured statistics.

    None of these are measured; they are tuning knobs for dashboards.
    """

    time_saved_hours_per_execution: float = 0.75
    automation_rate: int = 85
    average_response_time: int = 12
    fastest_response: int = 2
    sla_compliance: int = 94


class SoarflowConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    log_level: str = "INFO"
    default_assignee: str = DEFAULT_ASSIGNEE
    step_delay: float = Field(default=1.0, ge=0)
    action_latency_scale: float = Field(default=1.0, ge=0)
    statistics: StatisticsConfig = StatisticsConfig()


def load_config(path: Optional[str] = None) -> SoarflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to SOARFLOW_CONFIG env
            variable or 'soarflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("SOARFLOW_CONFIG", "soarflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = SoarflowConfig(**data)
    else:
        config = SoarflowConfig()

    env_db_url = os.getenv("SOARFLOW_DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_log_level = os.getenv("SOARFLOW_LOG_LEVEL")
    if env_log_level:
        config.log_level = env_log_level.upper()
    return config
