"""
Process-level configuration read from the environment (prefix DRAINQ_).

DRAINQ_QMKEY                  expected authorization key for drain loops
DRAINQ_MAX_EXECUTION_TIME     execution limit of the hosting process, seconds
                              (0 means none, drain loops then use 30 s)
DRAINQ_CLAIM_TIMEOUT_SECONDS  age after which a claim counts as abandoned
DRAINQ_LOG_LEVEL              log level for the command line tool
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

MAXEXECTIME = 30


class DrainQSettings(BaseSettings):
    """Environment configuration for drainq."""

    qmkey: str | None = Field(
        default=None,
        description="Key a drain loop invocation must present",
    )
    max_execution_time: int = Field(
        default=0,
        ge=0,
        description="Execution time limit of the hosting process in seconds",
    )
    claim_timeout_seconds: int = Field(
        default=3600,
        ge=1,
        description="Claims older than this are released on the next claim",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    model_config = {
        "env_prefix": "DRAINQ_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def default_execution_time(self) -> int:
        """Budget for a drain loop that did not ask for one."""
        return self.max_execution_time or MAXEXECTIME


def get_settings() -> DrainQSettings:
    return DrainQSettings()
