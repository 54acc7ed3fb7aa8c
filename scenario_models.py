"""
Scenario result models.

Defines the JSON structure of scenario outcomes, timing spans and run
summaries written by the load runner.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class OutcomeStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    INCONCLUSIVE = "inconclusive"


class SpanRecord(BaseModel):
    name: str
    scenario: str = ""
    started_at: float
    ended_at: float
    duration_seconds: float
    success: bool = True


class ScenarioOutcome(BaseModel):
    scenario: str
    status: OutcomeStatus
    message: str = ""  # failure message or inconclusive reason
    identity: str = ""
    started_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    duration_seconds: float = 0.0


class SpanStats(BaseModel):
    count: int = 0
    mean_seconds: float = 0.0
    max_seconds: float = 0.0


class RunSummary(BaseModel):
    scenario: str
    users: int = 0
    counts: dict[OutcomeStatus, int] = Field(
        default_factory=lambda: {status: 0 for status in OutcomeStatus}
    )
    spans: dict[str, SpanStats] = Field(default_factory=dict)
    started_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    finished_at: Optional[str] = None

    def add_outcome(self, outcome: ScenarioOutcome) -> None:
        self.counts[outcome.status] = self.counts.get(outcome.status, 0) + 1

    def add_span(self, record: SpanRecord) -> None:
        stats = self.spans.setdefault(record.name, SpanStats())
        total = stats.mean_seconds * stats.count + record.duration_seconds
        stats.count += 1
        stats.mean_seconds = total / stats.count
        stats.max_seconds = max(stats.max_seconds, record.duration_seconds)

    @property
    def total(self) -> int:
        return sum(self.counts.values())
