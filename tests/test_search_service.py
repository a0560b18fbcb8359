"""End-to-end tests for search orchestration and the response envelope.

Runs against the temp SQLite store through the session factory. Store
failures and timeouts are simulated with sessions whose execute() raises
or blocks.
"""

import time
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from patternatlas.config import Settings
from patternatlas.exceptions import StoreUnavailable
from patternatlas.search.service import (
    get_pattern_detail,
    search_patterns,
    search_patterns_sync,
)
from patternatlas.taxonomy.service import add_similarity, attach_tag


def _broken_factory():
    session = MagicMock()
    session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    return session


def _slow_factory():
    session = MagicMock()

    def _block(*args, **kwargs):
        time.sleep(0.5)
        raise OperationalError("SELECT 1", {}, Exception("too late"))

    session.execute.side_effect = _block
    return session


class TestScenario:
    @pytest.mark.asyncio
    async def test_department_filter_returns_only_p1(
        self, session_factory, test_settings, fraud_and_chatbot
    ):
        p1, _ = fraud_and_chatbot
        response = await search_patterns(session_factory, {"department": "Data"}, test_settings)
        assert response.status == "ok"
        assert response.error is None
        assert [r.id for r in response.results] == [p1.id]
        assert response.returned_count == 1
        assert response.total_considered_hint == 1

    @pytest.mark.asyncio
    async def test_keyword_fraud_ranks_p1_first(
        self, session_factory, test_settings, fraud_and_chatbot
    ):
        p1, _ = fraud_and_chatbot
        response = await search_patterns(session_factory, {"keywords": "fraud"}, test_settings)
        assert response.results[0].id == p1.id
        assert response.results[0].relevance_score > 0

    @pytest.mark.asyncio
    async def test_keyword_without_matches_is_ok_and_empty(
        self, session_factory, test_settings, fraud_and_chatbot
    ):
        response = await search_patterns(
            session_factory, {"keywords": "blockchain"}, test_settings
        )
        assert response.status == "ok"
        assert response.results == []
        assert response.returned_count == 0

    @pytest.mark.asyncio
    async def test_punctuation_only_keywords_never_return_unscored_results(
        self, session_factory, test_settings, fraud_and_chatbot, make_pattern
    ):
        response = await search_patterns(session_factory, {"keywords": "!!!"}, test_settings)
        assert response.status == "ok"
        assert response.results == []

        shouty = make_pattern(title="Wow!!! generative demos")
        response = await search_patterns(session_factory, {"keywords": "!!!"}, test_settings)
        assert [r.id for r in response.results] == [shouty.id]
        assert all(r.relevance_score > 0 for r in response.results)

    @pytest.mark.asyncio
    async def test_negative_limit_is_validation_error(self, session_factory, test_settings):
        response = await search_patterns(session_factory, {"limit": -5}, test_settings)
        assert response.status == "error"
        assert response.error.code == "ValidationError"
        assert response.error.field == "limit"
        assert response.results == []
        assert response.limit == test_settings.default_limit
        assert response.offset == 0

    @pytest.mark.asyncio
    async def test_no_filters_returns_whole_store_by_quality(
        self, session_factory, test_settings, fraud_and_chatbot, make_pattern
    ):
        p1, p2 = fraud_and_chatbot
        p3 = make_pattern(content_quality_score=70)
        response = await search_patterns(session_factory, {}, test_settings)
        assert [r.id for r in response.results] == [p1.id, p3.id, p2.id]
        assert response.limit == 20


class TestEnrichment:
    @pytest.mark.asyncio
    async def test_tags_examples_related_and_taxonomy(
        self, session_factory, db_session, test_settings, seeded_taxonomy, fraud_and_chatbot
    ):
        p1, p2 = fraud_and_chatbot
        attach_tag(db_session, p1.id, "fraud", 0.6)
        attach_tag(db_session, p1.id, "payments", 0.95)
        add_similarity(db_session, p2.id, p1.id, 0.42, "same-industry")
        db_session.commit()

        response = await search_patterns(session_factory, {"department": "Data"}, test_settings)
        result = response.results[0]

        assert [t.name for t in result.tags] == ["payments", "fraud"]
        assert result.company_examples == [{"company": "Stripe", "outcome": "fewer chargebacks"}]
        assert [(r.pattern_id, r.similarity_score) for r in result.related] == [(p2.id, 0.42)]
        assert result.taxonomy["department"].name == "Data"
        assert result.taxonomy["business_function"] is None

    @pytest.mark.asyncio
    async def test_patterns_without_relations_have_empty_lists(
        self, session_factory, test_settings, make_pattern
    ):
        make_pattern()
        response = await search_patterns(session_factory, {}, test_settings)
        result = response.results[0]
        assert result.tags == []
        assert result.related == []
        assert result.company_examples == []

    @pytest.mark.asyncio
    async def test_include_related_false_skips_neighbours(
        self, session_factory, db_session, test_settings, fraud_and_chatbot
    ):
        p1, p2 = fraud_and_chatbot
        add_similarity(db_session, p1.id, p2.id, 0.9)
        db_session.commit()
        response = await search_patterns(
            session_factory, {"include_related": "false"}, test_settings
        )
        assert all(r.related == [] for r in response.results)

    @pytest.mark.asyncio
    async def test_unknown_department_produces_notice(
        self, session_factory, test_settings, seeded_taxonomy, fraud_and_chatbot
    ):
        response = await search_patterns(
            session_factory, {"department": "Enginering"}, test_settings
        )
        assert response.status == "ok"
        assert response.results == []
        assert response.notices[0].field == "department"
        assert response.notices[0].suggestion == "Engineering"

    @pytest.mark.asyncio
    async def test_case_insensitive_match_produces_no_notice(
        self, session_factory, test_settings, seeded_taxonomy, fraud_and_chatbot
    ):
        p1, _ = fraud_and_chatbot
        settings = test_settings.model_copy(update={"case_insensitive_filters": True})
        response = await search_patterns(session_factory, {"department": "data"}, settings)
        assert [r.id for r in response.results] == [p1.id]
        assert response.notices == []

    @pytest.mark.asyncio
    async def test_known_labels_produce_no_notices(
        self, session_factory, test_settings, seeded_taxonomy, fraud_and_chatbot
    ):
        response = await search_patterns(
            session_factory, {"department": "Data", "role": "Anything"}, test_settings
        )
        assert response.notices == []


class TestPaginationEnvelope:
    @pytest.mark.asyncio
    async def test_huge_offset_is_validation_error(
        self, session_factory, test_settings, fraud_and_chatbot
    ):
        response = await search_patterns(session_factory, {"offset": 10**20}, test_settings)
        assert response.status == "error"
        assert response.error.code == "ValidationError"
        assert response.error.field == "offset"

    @pytest.mark.asyncio
    async def test_offset_past_end_is_ok_and_empty(
        self, session_factory, test_settings, fraud_and_chatbot
    ):
        response = await search_patterns(session_factory, {"offset": 50}, test_settings)
        assert response.status == "ok"
        assert response.results == []
        assert response.total_considered_hint == 2

    @pytest.mark.asyncio
    async def test_consecutive_pages_do_not_overlap(
        self, session_factory, test_settings, make_pattern
    ):
        for i in range(15):
            make_pattern(content_quality_score=i % 3)

        page1 = await search_patterns(session_factory, {"limit": 10}, test_settings)
        page2 = await search_patterns(
            session_factory, {"limit": 10, "offset": 10}, test_settings
        )
        everything = await search_patterns(session_factory, {"limit": 50}, test_settings)

        ids = [r.id for r in page1.results] + [r.id for r in page2.results]
        assert len(ids) == len(set(ids)) == 15
        assert ids == [r.id for r in everything.results]
        assert page2.offset == 10
        assert page2.returned_count == 5
        assert page2.total_considered_hint == 15


class TestFailures:
    @pytest.mark.asyncio
    async def test_store_error_becomes_store_unavailable(self, test_settings):
        response = await search_patterns(_broken_factory, {"keywords": "fraud"}, test_settings)
        assert response.status == "error"
        assert response.error.code == "StoreUnavailable"
        assert response.results == []

    @pytest.mark.asyncio
    async def test_timeout_becomes_store_unavailable(self):
        settings = Settings(_env_file=None, store_timeout_seconds=0.05)
        response = await search_patterns(_slow_factory, {}, settings)
        assert response.status == "error"
        assert response.error.code == "StoreUnavailable"

    @pytest.mark.asyncio
    async def test_bad_request_does_not_affect_next(
        self, session_factory, test_settings, fraud_and_chatbot
    ):
        bad = await search_patterns(session_factory, {"offset": "x"}, test_settings)
        good = await search_patterns(session_factory, {}, test_settings)
        assert bad.status == "error"
        assert good.status == "ok"
        assert good.returned_count == 2

    def test_sync_wrapper(self, session_factory, test_settings, fraud_and_chatbot):
        response = search_patterns_sync(session_factory, {"department": "Engineering"}, test_settings)
        assert [r.title for r in response.results] == ["Chatbot for support"]


class TestPatternDetail:
    @pytest.mark.asyncio
    async def test_returns_enriched_pattern(
        self, session_factory, db_session, test_settings, fraud_and_chatbot
    ):
        p1, p2 = fraud_and_chatbot
        add_similarity(db_session, p1.id, p2.id, 0.5)
        db_session.commit()
        result = await get_pattern_detail(session_factory, p2.id, test_settings)
        assert result.id == p2.id
        assert result.related[0].pattern_id == p1.id

    @pytest.mark.asyncio
    async def test_missing_pattern_is_none(self, session_factory, test_settings):
        assert await get_pattern_detail(session_factory, 12345, test_settings) is None

    @pytest.mark.asyncio
    async def test_store_error_raises(self, test_settings):
        with pytest.raises(StoreUnavailable):
            await get_pattern_detail(_broken_factory, 1, test_settings)
