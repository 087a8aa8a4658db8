"""Admin lock/unlock overrides.

Global scope flips the catalog flag. User scope writes the user's tracked
status plus an explicit override marker; each user is its own transaction, so
one failing user never blocks the rest of a batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learnstack.catalog.service import CatalogService
from learnstack.catalog.snapshot import Catalog
from learnstack.errors import LearnStackError, NotFoundError
from learnstack.progress.models import UserSnapshot
from learnstack.progress.service import ProgressService
from learnstack.progress.unlock import set_algorithm_override, set_topic_override

logger = logging.getLogger(__name__)


class LockRequest(BaseModel):
    scope: Literal["user", "global"]
    target: Literal["topic", "algorithm", "subject"]
    locked: bool
    topic_id: str | None = None
    algorithm_id: str | None = None
    subject: str | None = None
    user_ids: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_target(self) -> LockRequest:
        if self.target in ("topic", "algorithm") and not self.topic_id:
            raise ValueError("topic_id is required")
        if self.target == "algorithm" and not self.algorithm_id:
            raise ValueError("algorithm_id is required")
        if self.target == "subject" and not self.subject:
            raise ValueError("subject is required")
        if self.scope == "user" and not self.user_ids:
            raise ValueError("user_ids is required for user scope")
        return self


@dataclass
class LockResult:
    scope: str
    target: str
    locked: bool
    topics: list[str] = field(default_factory=list)
    updated_users: list[int] = field(default_factory=list)
    failed_users: dict[int, str] = field(default_factory=dict)


class AdminService:
    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis

    async def set_lock(self, request: LockRequest) -> LockResult:
        result = LockResult(scope=request.scope, target=request.target, locked=request.locked)
        catalog_service = CatalogService(self.db, self.redis)

        if request.scope == "global":
            if request.target == "topic":
                topic = await catalog_service.set_topic_global_lock(request.topic_id, request.locked)
                result.topics = [topic.id]
            elif request.target == "algorithm":
                await catalog_service.set_algorithm_global_lock(request.topic_id, request.algorithm_id, request.locked)
                result.topics = [request.topic_id]
            else:
                topics = await catalog_service.set_subject_global_lock(request.subject, request.locked)
                result.topics = [t.id for t in topics]
            return result

        catalog = await catalog_service.load_catalog()
        if request.target == "subject":
            result.topics = [t.id for t in catalog.topics_for_subject(request.subject)]
            if not result.topics:
                raise NotFoundError(f"Subject {request.subject} has no topics", subject=request.subject)
        else:
            result.topics = [request.topic_id]

        def _apply(snapshot: UserSnapshot, _catalog: Catalog | None) -> None:
            if request.target == "algorithm":
                set_algorithm_override(snapshot, catalog, request.topic_id, request.algorithm_id, request.locked)
            else:
                for topic_id in result.topics:
                    set_topic_override(snapshot, catalog, topic_id, request.locked)

        progress = ProgressService(self.db, self.redis)
        for user_id in request.user_ids:
            try:
                await progress.mutate(user_id, _apply, needs_catalog=False)
            except (LearnStackError, SQLAlchemyError) as e:
                await self.db.rollback()
                kind = getattr(e, "kind", "database_error")
                logger.warning("Lock override failed for user %s: %s", user_id, kind, exc_info=True)
                result.failed_users[user_id] = kind
                continue
            result.updated_users.append(user_id)

        logger.info(
            "%s %s for %d users (%d failed)",
            "Locked" if request.locked else "Unlocked",
            ",".join(result.topics),
            len(result.updated_users),
            len(result.failed_users),
        )
        return result
