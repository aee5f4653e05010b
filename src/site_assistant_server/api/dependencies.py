from functools import lru_cache
from typing import Optional

from fastapi import Request

from ..assistant.pipeline import AssistantPipeline, build_pipeline
from ..db import AnswerSink
from ..newsletter.listmonk import ListmonkClient
from ..ratelimit import FixedWindowRateLimiter


@lru_cache
def get_pipeline() -> AssistantPipeline:
    return build_pipeline()


@lru_cache
def get_listmonk_client() -> ListmonkClient:
    return ListmonkClient()


# Stateful resources are created in the application lifespan and live on
# app.state so they can be closed on shutdown.

def get_rate_limiter(request: Request) -> Optional[FixedWindowRateLimiter]:
    return getattr(request.app.state, "rate_limiter", None)


def get_answer_sink(request: Request) -> AnswerSink:
    sink = getattr(request.app.state, "answer_sink", None)
    return sink if sink is not None else AnswerSink()
