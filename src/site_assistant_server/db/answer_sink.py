"""
Answer Sink

Best-effort persistence of answered questions. Runs after the response has
been handed to the client, so it must never raise: every failure is logged
and dropped.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..assistant.models import AnswerRecord
from .models import AnswerRecordRow

logger = logging.getLogger("assistant.persistence")


class AnswerSink:
    """
    Write-only store for AnswerRecord rows.

    Without a session factory (no DATABASE_URL) every save is a no-op.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._session_factory = session_factory

    @property
    def enabled(self) -> bool:
        return self._session_factory is not None

    async def save(self, record: AnswerRecord) -> None:
        """
        Insert one row for ``record``; log and swallow any failure.
        """
        if self._session_factory is None:
            return

        try:
            async with self._session_factory() as session:
                session.add(AnswerRecordRow(**record.model_dump()))
                await session.commit()
        except Exception:
            logger.exception("Failed to persist assistant answer")
            return

        logger.debug("Persisted assistant answer (knowledge_found=%s)", record.knowledge_found)
