"""Tests for PMI tag relationship scoring."""

import math
from unittest.mock import AsyncMock

import pytest

from cms.services.corpus import pair_key
from cms.services.relationship import (
    compute_pmi_score,
    pointwise_mutual_information,
    score_for_article,
    score_tags,
)


def test_fewer_than_two_tags_score_zero():
    assert compute_pmi_score([], 10, {}, {}) == 0.0
    assert compute_pmi_score(["go"], 10, {"go": 5}, {}) == 0.0


def test_duplicates_count_as_one_tag():
    assert compute_pmi_score(["go", "go", "go"], 10, {"go": 5}, {}) == 0.0


def test_empty_corpus_scores_zero():
    assert compute_pmi_score(["go", "api"], 0, {}, {}) == 0.0


def test_no_co_occurrence_scores_zero():
    frequencies = {"go": 3, "api": 2, "sql": 4}
    assert compute_pmi_score(["go", "api", "sql"], 10, frequencies, {}) == 0.0


def test_independent_tags_score_zero():
    score = compute_pmi_score(
        ["a", "b"], 100, {"a": 50, "b": 50}, {pair_key("a", "b"): 25}
    )
    assert score == pytest.approx(0.0)


def test_single_pair_matches_hand_computed_pmi():
    # N=4, go on 3, api on 2, both on 2: ln((2/4) / ((3/4) * (2/4)))
    score = compute_pmi_score(
        ["go", "api"], 4, {"go": 3, "api": 2}, {pair_key("api", "go"): 2}
    )
    assert score == pytest.approx(math.log(4 / 3))
    assert score == pytest.approx(0.2877, abs=1e-4)


def test_anti_correlated_tags_score_negative():
    score = compute_pmi_score(
        ["a", "b"], 10, {"a": 5, "b": 5}, {pair_key("a", "b"): 1}
    )
    assert score == pytest.approx(math.log(0.4))
    assert score < 0


def test_unsupported_pairs_are_skipped_not_averaged_as_zero():
    frequencies = {"a": 2, "b": 2, "c": 3}
    co_occurrences = {pair_key("a", "b"): 2}
    expected = pointwise_mutual_information(2, 2, 2, 8)

    score = compute_pmi_score(["a", "b", "c"], 8, frequencies, co_occurrences)

    assert score == pytest.approx(expected)


def test_score_is_mean_over_valid_pairs():
    frequencies = {"a": 4, "b": 4, "c": 2}
    co_occurrences = {
        pair_key("a", "b"): 2,
        pair_key("a", "c"): 1,
        pair_key("b", "c"): 2,
    }
    expected = (
        pointwise_mutual_information(2, 4, 4, 8)
        + pointwise_mutual_information(1, 4, 2, 8)
        + pointwise_mutual_information(2, 4, 2, 8)
    ) / 3

    assert compute_pmi_score(["a", "b", "c"], 8, frequencies, co_occurrences) == pytest.approx(expected)


def test_score_is_order_independent():
    frequencies = {"a": 4, "b": 4, "c": 2}
    co_occurrences = {
        pair_key("a", "b"): 2,
        pair_key("a", "c"): 1,
        pair_key("b", "c"): 2,
    }
    forward = compute_pmi_score(["a", "b", "c"], 8, frequencies, co_occurrences)
    backward = compute_pmi_score(["c", "b", "a"], 8, frequencies, co_occurrences)
    shuffled = compute_pmi_score(["b", "a", "c", "a"], 8, frequencies, co_occurrences)

    assert forward == backward == shuffled


async def test_score_tags_against_corpus(db_session, make_article):
    await make_article(["go", "api"])
    await make_article(["go", "api"])
    await make_article(["go"])
    await make_article([])

    score = await score_tags(db_session, ["go", "api"])

    assert score == pytest.approx(math.log(4 / 3))


async def test_score_tags_uses_latest_version_scope(db_session, make_article):
    # Published version has no pair; the newer draft does
    await make_article(["go"], draft_tags=["go", "api"])
    await make_article(["api"])
    await make_article([])

    score = await score_tags(db_session, ["api", "go"])

    # N=3, go=1, api=2, both=1; the published scope would have no pair at all
    assert score == pytest.approx(math.log((1 / 3) / ((1 / 3) * (2 / 3))))


async def test_score_tags_ignores_deleted_articles(db_session, make_article):
    await make_article(["go", "api"])
    await make_article(["go"])
    await make_article([])
    await make_article(["go", "api"], deleted=True)

    score = await score_tags(db_session, ["go", "api"])

    # N=3, go=2, api=1, both=1; counting the deleted article would give ln(4/3)
    assert score == pytest.approx(math.log(1.5))


async def test_score_tags_unknown_tags_score_zero(db_session, make_article):
    await make_article(["go"])

    assert await score_tags(db_session, ["rust", "zig"]) == 0.0


async def test_score_for_article_resolves_latest_tags(db_session, make_article):
    article = await make_article(["go", "api"])
    await make_article(["go", "api"])
    await make_article(["go"])
    await make_article([])

    score = await score_for_article(db_session, article.id)

    assert score == pytest.approx(math.log(4 / 3))


async def test_score_for_article_with_single_tag_is_zero(db_session, make_article):
    article = await make_article(["go"])

    assert await score_for_article(db_session, article.id) == 0.0


async def test_query_failure_falls_back_to_zero():
    session = AsyncMock()
    session.execute.side_effect = RuntimeError("connection reset")

    score = await score_tags(session, ["go", "api"])

    assert score == 0.0
    session.rollback.assert_awaited_once()


async def test_article_lookup_failure_falls_back_to_zero():
    session = AsyncMock()
    session.execute.side_effect = RuntimeError("connection reset")

    assert await score_for_article(session, 1) == 0.0
    session.rollback.assert_awaited()
