"""Pydantic response models for leaderboard endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    position: int
    user_id: int
    username: str
    score: int
    metrics: dict[str, int] = {}


class LeaderboardResponse(BaseModel):
    type: str
    period_start: datetime
    period_end: datetime | None = None
    last_updated: datetime
    entries: list[LeaderboardEntry]
    total: int


class MyPositionResponse(BaseModel):
    type: str
    entry: LeaderboardEntry | None = None
