"""
DrainLoopConfig — the budget and identity one drain loop runs under.

Built either directly with keyword arguments or from an arbitrary mapping
(for example parsed query parameters) via from_mapping(), which reads only
the recognised fields and ignores everything else.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)


class DrainLoopConfig(BaseModel):
    """
    qmkey              — authorization key supplied by the caller
    max_execution_time — wall-clock seconds allowed from the loop's own start;
                         None falls back to the environment execution limit
    max_queue_items    — ceiling on poll attempts; None means unbounded
    started_at         — start timestamp override (tests, resumption)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    qmkey: str | None = None
    max_execution_time: int | None = None
    max_queue_items: int | None = None
    started_at: datetime | None = None

    @field_validator("started_at")
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        """Naive timestamps are taken to be UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def from_mapping(cls, args: Mapping[str, Any]) -> DrainLoopConfig:
        known = cls.model_fields.keys()
        unknown = sorted(k for k in args if k not in known)
        if unknown:
            logger.debug("Ignoring unknown drain loop options: %s", ", ".join(unknown))
        return cls.model_validate({k: v for k, v in args.items() if k in known})
