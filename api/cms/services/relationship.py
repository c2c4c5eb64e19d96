"""Tag relationship scoring service.

Scores how strongly an article's tags belong together using pointwise
mutual information (PMI) over the article corpus:

    pmi(a, b) = ln( P(a, b) / (P(a) * P(b)) )

where P(x) is the share of articles whose latest version carries x. The
score of a tag set is the mean PMI over its unordered pairs. Tags that
co-occur more often than their individual popularity predicts score above
zero, independent tags score about zero, tags that avoid each other score
below zero. Raw PMI is returned (no clamping to positive PMI).

Pairs where any of freq(a), freq(b), co(a, b) is zero are skipped, so
sparse pairs neither produce ln(0) nor drag the mean towards zero.

Scoring is best-effort enrichment: a failing corpus query is logged and the
score falls back to 0.0. It never blocks version creation.
"""

import math
from collections.abc import Iterable, Mapping

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cms.metrics import tag_score_duration, tag_score_failures, tag_score_total
from cms.services.corpus import (
    get_tag_frequencies,
    get_tag_pair_co_occurrences,
    get_tags_for_article,
    get_total_article_count,
    pair_key,
)

log = structlog.get_logger(__name__)

# A relationship needs at least one pair
MIN_TAGS_FOR_SCORE = 2


def pointwise_mutual_information(
    co_occurrence: int, freq_a: int, freq_b: int, total: int
) -> float:
    """PMI of one tag pair from raw article counts. All counts must be > 0."""
    p_both = co_occurrence / total
    p_a = freq_a / total
    p_b = freq_b / total
    return math.log(p_both / (p_a * p_b))


def compute_pmi_score(
    tag_names: Iterable[str],
    total_articles: int,
    frequencies: Mapping[str, int],
    co_occurrences: Mapping[str, int],
) -> float:
    """Mean pairwise PMI of a tag set over an already-fetched corpus snapshot.

    Duplicates in tag_names are ignored. Missing frequency or co-occurrence
    entries count as zero. Returns 0.0 when fewer than two distinct tags are
    given, when the corpus is empty, or when no pair has full support.
    """
    tags = sorted(set(tag_names))
    if len(tags) < MIN_TAGS_FOR_SCORE or total_articles <= 0:
        return 0.0

    score_sum = 0.0
    pair_count = 0
    for i in range(len(tags) - 1):
        for j in range(i + 1, len(tags)):
            tag_a, tag_b = tags[i], tags[j]
            freq_a = frequencies.get(tag_a, 0)
            freq_b = frequencies.get(tag_b, 0)
            co = co_occurrences.get(pair_key(tag_a, tag_b), 0)
            if freq_a == 0 or freq_b == 0 or co == 0:
                continue
            score_sum += pointwise_mutual_information(co, freq_a, freq_b, total_articles)
            pair_count += 1

    if pair_count == 0:
        return 0.0
    return score_sum / pair_count


async def score_tags(session: AsyncSession, tag_names: Iterable[str]) -> float:
    """Score a tag set against the current corpus (latest-version scope).

    Issues three batched queries: corpus size, per-tag frequencies and
    per-pair co-occurrences. On any query failure the session is rolled back
    and 0.0 is returned.
    """
    tags = sorted(set(tag_names))
    if len(tags) < MIN_TAGS_FOR_SCORE:
        return 0.0

    tag_score_total.inc()
    with tag_score_duration.time():
        try:
            total = await get_total_article_count(session)
            if total == 0:
                return 0.0
            frequencies = await get_tag_frequencies(session, tags)
            co_occurrences = await get_tag_pair_co_occurrences(session, tags)
        except Exception:
            tag_score_failures.inc()
            log.warning("tag_score_failed", tag_count=len(tags), exc_info=True)
            await session.rollback()
            return 0.0

    score = compute_pmi_score(tags, total, frequencies, co_occurrences)
    log.debug(
        "tag_score_computed",
        tags=tags,
        total_articles=total,
        frequencies=frequencies,
        co_occurrences=co_occurrences,
        score=score,
    )
    return score


async def score_for_article(session: AsyncSession, article_id: int) -> float:
    """Score the tags of an article's latest version."""
    try:
        tags = await get_tags_for_article(session, article_id)
    except Exception:
        tag_score_failures.inc()
        log.warning("article_tags_lookup_failed", article_id=article_id, exc_info=True)
        await session.rollback()
        return 0.0
    return await score_tags(session, tags)
