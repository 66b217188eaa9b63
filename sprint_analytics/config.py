"""
Configuration for the Sprint Analytics engine.

Values come from config/config.yaml and are overridden by environment
variables. The engine functions never read this object themselves; callers
pass the values they need as explicit parameters.
"""

import os
from typing import Optional

import yaml

from .capacity import CapacityThresholds


class EngineConfig:
    """Load configuration from config.yaml and environment."""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = {}

        if os.path.exists(config_path):
            with open(config_path) as f:
                self.config = yaml.safe_load(f) or {}

        # Override with environment variables
        self._load_env()

    def _load_env(self):
        """Load configuration from environment variables."""
        env_mapping = {
            "JIRA_URL": ("jira", "url"),
            "JIRA_EMAIL": ("jira", "email"),
            "JIRA_TOKEN": ("jira", "token"),
            "HOLIDAY_LOCATION": ("calendar", "location"),
            "IDEAL_GAP_THRESHOLD": ("utilization", "ideal_gap_threshold"),
            "LOG_LEVEL": ("logging", "level"),
            "LOG_FORMAT": ("logging", "format"),
        }

        for env_var, (section, key) in env_mapping.items():
            value = os.getenv(env_var)
            if value:
                if section not in self.config:
                    self.config[section] = {}
                self.config[section][key] = value

    def get(self, section: str, key: str, default=None):
        """Get configuration value."""
        return (self.config.get(section) or {}).get(key, default)

    @property
    def jira_url(self) -> Optional[str]:
        return self.get("jira", "url")

    @property
    def jira_email(self) -> Optional[str]:
        return self.get("jira", "email")

    @property
    def jira_token(self) -> Optional[str]:
        return self.get("jira", "token")

    @property
    def holiday_location(self) -> Optional[str]:
        return self.get("calendar", "location")

    @property
    def ideal_gap_threshold(self) -> float:
        return float(self.get("utilization", "ideal_gap_threshold", 5))

    @property
    def overloaded_percentage(self) -> float:
        return float(self.get("utilization", "overloaded_percentage", 100))

    @property
    def underutilized_percentage(self) -> float:
        return float(self.get("utilization", "underutilized_percentage", 70))

    def capacity_thresholds(self) -> CapacityThresholds:
        """Utilization thresholds to pass to CapacityCalculator."""
        return CapacityThresholds(
            ideal_gap_threshold=self.ideal_gap_threshold,
            overloaded_percentage=self.overloaded_percentage,
            underutilized_percentage=self.underutilized_percentage,
        )

    @property
    def freeze_days_before(self) -> int:
        return int(self.get("sprint", "freeze_days_before", 2))

    @property
    def velocity_history_size(self) -> int:
        return int(self.get("sprint", "velocity_history_size", 5))

    @property
    def worklog_max_workers(self) -> int:
        return int(self.get("worklog_sync", "max_workers", 10))

    @property
    def worklog_queue_capacity(self) -> int:
        return int(self.get("worklog_sync", "queue_capacity", 100))

    @property
    def log_level(self) -> str:
        return self.get("logging", "level", "info")

    @property
    def log_json(self) -> bool:
        return self.get("logging", "format", "console") == "json"
