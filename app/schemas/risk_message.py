"""
Queue message consumed by the risk score worker.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class MessageType(str, Enum):
    INDIVIDUAL = "individual"
    BATCH = "batch"
    BOX = "box"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class RiskScoreMessage(BaseModel):
    type: MessageType
    membership_id: Optional[str] = Field(None, description="Required for type=individual")
    membership_ids: Optional[list[str]] = Field(None, description="Required for type=batch")
    box_id: Optional[str] = Field(None, description="Required for type=box")
    priority: Priority = Priority.NORMAL
