"""
Assistant Domain Models

Value objects passed between the stages of the assistant pipeline.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------

class Match(BaseModel):
    """
    A single nearest-neighbour hit returned by the vector index.
    """
    id: str
    score: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


UnavailableReason = Literal["timeout", "http_error", "transport_error", "invalid_response"]


class SearchOutcome(BaseModel):
    """
    Result of the best-effort similarity search.

    ``available`` is False whenever the search could not be completed;
    ``reason`` then says why. An available outcome may still have zero
    matches.
    """
    available: bool
    matches: List[Match] = Field(default_factory=list)
    reason: Optional[UnavailableReason] = None

    @classmethod
    def found(cls, matches: List[Match]) -> "SearchOutcome":
        return cls(available=True, matches=matches)

    @classmethod
    def unavailable(cls, reason: UnavailableReason) -> "SearchOutcome":
        return cls(available=False, reason=reason)

    @property
    def first_match(self) -> Optional[Match]:
        return self.matches[0] if self.matches else None


# ---------------------------------------------------------------------
# Prompting
# ---------------------------------------------------------------------

class Profile(BaseModel):
    """Persona the assistant speaks as."""
    name: str
    role: str
    style: str


# ---------------------------------------------------------------------
# Pipeline Output
# ---------------------------------------------------------------------

class AssistantAnswer(BaseModel):
    """
    Generated answer plus the retrieval facts needed for persistence.
    """
    text: str
    system_prompt: str
    knowledge_found: bool
    article_url: Optional[str] = None
    article_section: Optional[str] = None


class AnswerRecord(BaseModel):
    """
    Write-only record of an answered question.
    """
    query: str
    knowledge_found: bool
    article_url: Optional[str] = None
    article_section: Optional[str] = None
    response_text: str
    client_ip: Optional[str] = None
    country_code: Optional[str] = None
