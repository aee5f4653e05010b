"""
Knowledge Assembly and Abuse Filter Tests
"""

import pytest

from site_assistant_server.assistant.abuse import is_bot
from site_assistant_server.assistant.knowledge import (
    NO_KNOWLEDGE_INSTRUCTION,
    assemble_knowledge,
    attribution,
    knowledge_or_refusal,
)
from site_assistant_server.assistant.models import Match, SearchOutcome


class TestHoneypot:

    @pytest.mark.parametrize("value", ["x", "http://spam.example", "  filled  ", "\tbot\n"])
    def test_non_blank_values_flag_a_bot(self, value):
        assert is_bot(value) is True

    @pytest.mark.parametrize("value", [None, "", "   ", "\n\t"])
    def test_blank_values_are_human(self, value):
        assert is_bot(value) is False


class TestAssembleKnowledge:

    def test_joins_text_fields_in_match_order(self):
        outcome = SearchOutcome.found([
            Match(id="a", metadata={"text": "First."}),
            Match(id="b", metadata={"content": "Second."}),
            Match(id="c"),
        ])

        assert assemble_knowledge(outcome) == "First.\n\nSecond.\n\nc"

    def test_text_wins_over_content(self):
        outcome = SearchOutcome.found([
            Match(id="a", metadata={"text": "Text", "content": "Content"}),
        ])
        assert assemble_knowledge(outcome) == "Text"

    def test_empty_values_fall_through_and_blank_ids_are_dropped(self):
        outcome = SearchOutcome.found([
            Match(id="", metadata={"text": "", "content": ""}),
            Match(id="b", metadata={"text": ""}),
        ])
        assert assemble_knowledge(outcome) == "b"

    def test_no_matches_gives_empty_string(self):
        assert assemble_knowledge(SearchOutcome.found([])) == ""

    def test_unavailable_search_gives_empty_string(self):
        assert assemble_knowledge(SearchOutcome.unavailable("timeout")) == ""
        assert assemble_knowledge(None) == ""


class TestRefusal:

    @pytest.mark.parametrize("knowledge", ["", "   ", "\n\n"])
    def test_blank_knowledge_becomes_refusal(self, knowledge):
        assert knowledge_or_refusal(knowledge) == NO_KNOWLEDGE_INSTRUCTION

    def test_refusal_forbids_general_knowledge(self):
        assert "Do NOT use any general knowledge or training data" in NO_KNOWLEDGE_INSTRUCTION

    def test_real_knowledge_passes_through(self):
        assert knowledge_or_refusal("Technical debt is...") == "Technical debt is..."


class TestAttribution:

    def test_first_match_is_authoritative(self):
        outcome = SearchOutcome.found([
            Match(id="a", metadata={"url": "/blog/debt", "section": "Intro"}),
            Match(id="b", metadata={"url": "/blog/other", "section": "Other"}),
        ])
        assert attribution(outcome) == ("/blog/debt", "Intro")

    def test_camel_case_metadata_keys(self):
        outcome = SearchOutcome.found([
            Match(id="a", metadata={"articleUrl": "/blog/x", "articleSection": "Why"}),
        ])
        assert attribution(outcome) == ("/blog/x", "Why")

    def test_no_matches_no_attribution(self):
        assert attribution(SearchOutcome.unavailable("http_error")) == (None, None)
