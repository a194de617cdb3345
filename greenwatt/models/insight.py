from pydantic import BaseModel, ConfigDict, Field
from enum import Enum
from typing import Dict, Optional
import uuid


class InsightPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort key, lower ranks first"""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    InsightPriority.HIGH: 0,
    InsightPriority.MEDIUM: 1,
    InsightPriority.LOW: 2,
}


class Insight(BaseModel):
    """Advisory message produced by one insight rule"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    rule_id: str
    message: str
    priority: InsightPriority
    savings: str = Field(..., description="Estimated savings, e.g. $12/mo")
    savings_amount: float = Field(0.0, ge=0, description="Estimated monthly savings in currency units")
    category: str
    device_id: Optional[str] = None


class InsightRule(BaseModel):
    """One row of the insight rule table"""
    model_config = ConfigDict(frozen=True)

    id: str
    condition: str = Field(..., description="Condition kind evaluated by the generator")
    priority: InsightPriority
    category: str
    message: str = Field(..., description="Template formatted with the match fields")
    params: Dict[str, float] = Field(default_factory=dict)
    target_category: Optional[str] = None


class QuickAction(str, Enum):
    ECO = "eco"
    SLEEP = "sleep"
    AWAY = "away"
    OPTIMIZE = "optimize"


class TopInsightStatus(str, Enum):
    FOUND = "found"
    EMPTY = "empty"
    PENDING = "pending"


class TopInsight(BaseModel):
    """Explicit result of asking for the top insight"""
    status: TopInsightStatus
    insight: Optional[Insight] = None

    def __bool__(self) -> bool:
        return self.status == TopInsightStatus.FOUND
