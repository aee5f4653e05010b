"""
Answer Persistence Tests
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from site_assistant_server.assistant.models import AnswerRecord
from site_assistant_server.db import AnswerRecordRow, AnswerSink

RECORD = AnswerRecord(
    query="What is technical debt?",
    knowledge_found=True,
    article_url="/blog/debt",
    article_section="Intro",
    response_text="It is...",
    client_ip="1.2.3.4",
    country_code="NL",
)


def make_session_factory(session):
    """Build a callable returning an async context manager yielding ``session``."""
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=context)


@pytest.mark.asyncio
async def test_without_database_save_is_a_no_op():
    sink = AnswerSink()

    assert sink.enabled is False
    await sink.save(RECORD)


@pytest.mark.asyncio
async def test_save_inserts_one_row_and_commits():
    session = MagicMock()
    session.commit = AsyncMock()
    sink = AnswerSink(make_session_factory(session))

    await sink.save(RECORD)

    session.add.assert_called_once()
    row = session.add.call_args.args[0]
    assert isinstance(row, AnswerRecordRow)
    assert row.query == "What is technical debt?"
    assert row.knowledge_found is True
    assert row.article_url == "/blog/debt"
    assert row.client_ip == "1.2.3.4"
    assert row.country_code == "NL"
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_insert_failure_is_swallowed():
    session = MagicMock()
    session.commit = AsyncMock(side_effect=RuntimeError("database is gone"))
    sink = AnswerSink(make_session_factory(session))

    # Must not raise
    await sink.save(RECORD)

    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_connection_failure_is_swallowed():
    factory = MagicMock(side_effect=OSError("connection refused"))
    sink = AnswerSink(factory)

    await sink.save(RECORD)
