"""Corpus statistics queries.

Frequency queries over the active article population (non-deleted articles,
versions and tags). Two scopes are used on purpose:

- latest scope: tags on each article's latest version (any status). Feeds
  the relationship scorer, so a fresh draft is scored against current work.
- published scope: tags on each article's published version. Feeds the
  tag usage_count / trending_score refresh.

Every query is batched: one round-trip per statistic regardless of how many
tags are involved.
"""

from collections.abc import Iterable

from sqlalchemy import bindparam, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from cms.models.article import Article

PAIR_SEPARATOR = "|"


def pair_key(tag_a: str, tag_b: str) -> str:
    """Canonical, order-independent key for a tag pair: "min|max"."""
    if tag_b < tag_a:
        tag_a, tag_b = tag_b, tag_a
    return f"{tag_a}{PAIR_SEPARATOR}{tag_b}"


async def get_total_article_count(session: AsyncSession) -> int:
    """Count non-deleted articles (the corpus size N)."""
    result = await session.execute(
        select(func.count(Article.id)).where(Article.deleted_at.is_(None))
    )
    return result.scalar_one()


async def get_tags_for_article(session: AsyncSession, article_id: int) -> list[str]:
    """Tag names of the article's latest non-deleted version, sorted by name."""
    result = await session.execute(
        text(
            """
            SELECT t.name
            FROM articles a
            JOIN article_versions av ON av.id = a.latest_version_id
            JOIN article_version_tags avt ON avt.article_version_id = av.id
            JOIN tags t ON t.id = avt.tag_id
            WHERE a.id = :article_id
              AND a.deleted_at IS NULL
              AND av.deleted_at IS NULL
              AND t.deleted_at IS NULL
            ORDER BY t.name
            """
        ),
        {"article_id": article_id},
    )
    return list(result.scalars().all())


async def get_tag_frequencies(
    session: AsyncSession, tag_names: Iterable[str]
) -> dict[str, int]:
    """Per-tag count of articles whose latest version carries the tag.

    Tags that appear on no article are absent from the result (implied 0).
    """
    names = sorted(set(tag_names))
    if not names:
        return {}

    stmt = text(
        """
        SELECT t.name AS tag_name, COUNT(DISTINCT a.id) AS freq
        FROM articles a
        JOIN article_versions av ON av.id = a.latest_version_id
        JOIN article_version_tags avt ON avt.article_version_id = av.id
        JOIN tags t ON t.id = avt.tag_id
        WHERE t.name IN :names
          AND a.deleted_at IS NULL
          AND av.deleted_at IS NULL
          AND t.deleted_at IS NULL
        GROUP BY t.name
        """
    ).bindparams(bindparam("names", expanding=True))
    result = await session.execute(stmt, {"names": names})
    return {row.tag_name: row.freq for row in result.all()}


async def get_tag_pair_co_occurrences(
    session: AsyncSession, tag_names: Iterable[str]
) -> dict[str, int]:
    """Count articles whose latest version carries both tags of each pair.

    Keys are canonical pair keys (see pair_key). Pairs that never co-occur
    are absent from the result.
    """
    names = sorted(set(tag_names))
    if len(names) < 2:
        return {}

    # t1.name < t2.name yields each unordered pair once; the key is
    # canonicalized in Python so it does not depend on the DB collation.
    stmt = text(
        """
        SELECT t1.name AS tag_a, t2.name AS tag_b, COUNT(DISTINCT a.id) AS freq
        FROM articles a
        JOIN article_versions av ON av.id = a.latest_version_id
        JOIN article_version_tags avt1 ON avt1.article_version_id = av.id
        JOIN tags t1 ON t1.id = avt1.tag_id
        JOIN article_version_tags avt2 ON avt2.article_version_id = av.id
        JOIN tags t2 ON t2.id = avt2.tag_id
        WHERE t1.name IN :names_a
          AND t2.name IN :names_b
          AND t1.name < t2.name
          AND a.deleted_at IS NULL
          AND av.deleted_at IS NULL
          AND t1.deleted_at IS NULL
          AND t2.deleted_at IS NULL
        GROUP BY t1.name, t2.name
        """
    ).bindparams(
        bindparam("names_a", expanding=True),
        bindparam("names_b", expanding=True),
    )
    result = await session.execute(stmt, {"names_a": names, "names_b": names})

    co_occurrences: dict[str, int] = {}
    for row in result.all():
        key = pair_key(row.tag_a, row.tag_b)
        co_occurrences[key] = co_occurrences.get(key, 0) + row.freq
    return co_occurrences


async def count_articles_by_tag(session: AsyncSession) -> dict[int, int]:
    """Per-tag-id count of articles whose published version carries the tag."""
    result = await session.execute(
        text(
            """
            SELECT avt.tag_id AS tag_id, COUNT(DISTINCT a.id) AS cnt
            FROM articles a
            JOIN article_versions av ON av.id = a.published_version_id
            JOIN article_version_tags avt ON avt.article_version_id = av.id
            JOIN tags t ON t.id = avt.tag_id
            WHERE av.status = 'published'
              AND a.deleted_at IS NULL
              AND av.deleted_at IS NULL
              AND t.deleted_at IS NULL
            GROUP BY avt.tag_id
            """
        )
    )
    return {row.tag_id: row.cnt for row in result.all()}
