"""Request/response schemas for doubt endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CreateDoubtRequest(BaseModel):
    subject: str = Field(..., min_length=1, max_length=100)
    topic_id: str = Field(..., min_length=1, max_length=64)
    question: str = Field(..., min_length=1, max_length=2000)


class ReplyRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)


class DoubtThreadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    mentor_id: int | None
    subject: str
    topic_id: str
    initial_question: str
    status: str
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None = None


class DoubtMessageResponse(BaseModel):
    id: int
    sender_id: int
    sender_username: str
    sender_role: str
    message: str
    created_at: datetime


class DoubtThreadDetailResponse(BaseModel):
    thread: DoubtThreadResponse
    messages: list[DoubtMessageResponse]


class DoubtListResponse(BaseModel):
    threads: list[DoubtThreadResponse]


class PurgeResponse(BaseModel):
    purged: int
