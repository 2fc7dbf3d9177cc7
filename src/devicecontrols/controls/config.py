"""Configuration loader for the device controls service."""

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.devicecontrols/config.json"
DEFAULT_TABLE_NAME = "devicecontrols-state-log"
DEFAULT_REGION = "eu-central-1"
DEFAULT_MAX_PENDING = 256

_TRUTHY = {"1", "true", "yes", "on"}


class LevelPolicy(str, Enum):
    """What to do with a level outside [0, 100]."""

    CLAMP = "clamp"
    REJECT = "reject"


@dataclass
class ControlsConfig:
    """Device controls configuration."""

    level_policy: str = LevelPolicy.CLAMP.value
    state_log_enabled: bool = False
    state_log_table: str = DEFAULT_TABLE_NAME
    aws_region: str = DEFAULT_REGION
    aws_profile: Optional[str] = None
    max_pending_updates: int = DEFAULT_MAX_PENDING

    def validate(self) -> None:
        """Validate option values."""
        allowed = {p.value for p in LevelPolicy}
        if self.level_policy not in allowed:
            raise ValueError(
                f"level_policy must be one of {sorted(allowed)}, got {self.level_policy!r}"
            )
        if self.max_pending_updates < 1:
            raise ValueError(
                f"max_pending_updates must be at least 1, got {self.max_pending_updates}"
            )

    @property
    def policy(self) -> LevelPolicy:
        return LevelPolicy(self.level_policy)


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def load_config(config_path: Optional[str] = None) -> ControlsConfig:
    """Load configuration from file with environment variable overrides.

    A missing config file is not an error: defaults apply.

    Environment variables:
        DEVICE_CONTROLS_CONFIG: Override config file location
        DEVICE_CONTROLS_LEVEL_POLICY: 'clamp' or 'reject'
        DEVICE_CONTROLS_STATE_LOG: Enable DynamoDB state logging (1/true/yes)
        DEVICE_CONTROLS_MAX_PENDING: Queue bound for each update subscription
        DYNAMODB_TABLE_NAME: State log table name
        AWS_DEFAULT_REGION: AWS region for the state log
        AWS_PROFILE: AWS profile for the state log

    Args:
        config_path: Path to config JSON file. Defaults to ~/.devicecontrols/config.json

    Returns:
        Validated ControlsConfig
    """
    path_str = config_path or os.environ.get("DEVICE_CONTROLS_CONFIG", DEFAULT_CONFIG_PATH)
    config_file = Path(path_str).expanduser()

    data = {}
    if config_file.exists():
        with open(config_file) as f:
            data = json.load(f)
    else:
        logger.debug(f"No config file at {config_file}, using defaults")

    config = ControlsConfig(
        level_policy=os.environ.get(
            "DEVICE_CONTROLS_LEVEL_POLICY", data.get("level_policy", LevelPolicy.CLAMP.value)
        ).lower(),
        state_log_enabled=_as_bool(
            os.environ.get("DEVICE_CONTROLS_STATE_LOG", data.get("state_log_enabled", False))
        ),
        state_log_table=os.environ.get(
            "DYNAMODB_TABLE_NAME", data.get("state_log_table", DEFAULT_TABLE_NAME)
        ),
        aws_region=os.environ.get("AWS_DEFAULT_REGION", data.get("aws_region", DEFAULT_REGION)),
        aws_profile=os.environ.get("AWS_PROFILE", data.get("aws_profile")),
        max_pending_updates=int(
            os.environ.get(
                "DEVICE_CONTROLS_MAX_PENDING", data.get("max_pending_updates", DEFAULT_MAX_PENDING)
            )
        ),
    )
    config.validate()

    logger.info(
        f"Loaded controls config: level_policy={config.level_policy}, "
        f"state_log={'on' if config.state_log_enabled else 'off'}"
    )
    return config
