"""
Assistant Pipeline: Grounded Question Answering

Orchestrates one visitor question end to end:

1. Embed the query (fatal on failure).
2. Launch the deadline-bounded similarity search.
3. Prepare the base system prompt while the search is in flight.
4. Assemble knowledge, or the refusal instruction when nothing was found.
5. Generate the answer (fatal on failure).

Failures below generation (search) degrade to "no knowledge"; embedding and
generation failures propagate as UpstreamFatalError subclasses for the
route's exception handlers to classify. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Callable, Optional

from ..config import settings
from .embedder import EmbeddingClient
from .generator import GenerationClient
from .knowledge import assemble_knowledge, attribution, knowledge_or_refusal
from .models import AssistantAnswer, Profile
from .prompts import PromptBuilder, load_template
from .search import SimilaritySearchClient

logger = logging.getLogger("assistant.pipeline")


class AssistantPipeline:
    """
    Stateless orchestrator over the three upstream clients.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        search: SimilaritySearchClient,
        generator: GenerationClient,
        prompt_builder: PromptBuilder,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.embedder = embedder
        self.search = search
        self.generator = generator
        self.prompt_builder = prompt_builder
        self._today = today

    async def answer(self, query: str) -> AssistantAnswer:
        """
        Answer ``query`` from the knowledge base.

        Raises
        ------
        UpstreamFatalError
            If embedding or generation fails.
        """
        vector = await self.embedder.embed(query)

        search_task = asyncio.create_task(self.search.query(vector))
        base_prompt = self.prompt_builder.prepare_base(self._today())
        outcome = await search_task

        if not outcome.available:
            logger.info("Answering without retrieval (%s)", outcome.reason)

        knowledge = assemble_knowledge(outcome)
        knowledge_found = bool(knowledge.strip())
        system_prompt = self.prompt_builder.finalize(base_prompt, knowledge_or_refusal(knowledge))

        text = await self.generator.generate(system_prompt, query)

        article_url, article_section = attribution(outcome)
        return AssistantAnswer(
            text=text,
            system_prompt=system_prompt,
            knowledge_found=knowledge_found,
            article_url=article_url,
            article_section=article_section,
        )


def build_pipeline(
    embedder: Optional[EmbeddingClient] = None,
    search: Optional[SimilaritySearchClient] = None,
    generator: Optional[GenerationClient] = None,
    prompt_builder: Optional[PromptBuilder] = None,
) -> AssistantPipeline:
    """Wire a pipeline from settings, allowing any collaborator to be replaced."""
    if prompt_builder is None:
        prompt_builder = PromptBuilder(
            load_template(settings.prompt_template_path),
            Profile(
                name=settings.profile_name,
                role=settings.profile_role,
                style=settings.profile_style,
            ),
        )

    return AssistantPipeline(
        embedder=embedder or EmbeddingClient(),
        search=search or SimilaritySearchClient(),
        generator=generator or GenerationClient(),
        prompt_builder=prompt_builder,
    )
