"""
Database Package

Optional SQLAlchemy async persistence for answered assistant questions.
"""

from .session import create_engine, create_session_factory, init_models
from .models import Base, AnswerRecordRow
from .answer_sink import AnswerSink

__all__ = [
    "create_engine",
    "create_session_factory",
    "init_models",
    "Base",
    "AnswerRecordRow",
    "AnswerSink",
]
