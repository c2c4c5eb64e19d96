"""Tests for the article version HTTP endpoints."""

import math

import pytest


async def tag_usage(client):
    response = await client.get("/api/v1/tags")
    return {t["name"]: t["usage_count"] for t in response.json()["tags"]}


async def test_create_article_returns_scored_first_version(client, make_article):
    await make_article(["go"])
    await make_article(["api"])

    response = await client.post(
        "/api/v1/articles",
        json={"title": "Intro", "content": "body", "tags": ["go", "API"]},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["version_number"] == 1
    assert data["status"] == "draft"
    assert [t["name"] for t in data["tags"]] == ["api", "go"]
    assert data["article_tag_relationship_score"] == pytest.approx(math.log(0.75))


async def test_create_article_requires_title(client):
    response = await client.post("/api/v1/articles", json={"title": "", "content": "body"})

    assert response.status_code == 422


async def test_create_version(client):
    first = (
        await client.post("/api/v1/articles", json={"title": "Intro", "content": "v1", "tags": ["go"]})
    ).json()

    response = await client.post(
        f"/api/v1/articles/{first['article_id']}/versions",
        json={"title": "Intro", "content": "v2", "tags": ["go", "sql"]},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["version_number"] == 2
    assert data["article_id"] == first["article_id"]


async def test_create_version_for_missing_article(client):
    response = await client.post(
        "/api/v1/articles/999/versions",
        json={"title": "Intro", "content": "body", "tags": []},
    )

    assert response.status_code == 404
    data = response.json()
    assert data["error"] == "ArticleNotFoundError"
    assert data["details"] == {"article_id": 999}


async def test_publish_and_archive_drive_tag_usage(client):
    version = (
        await client.post("/api/v1/articles", json={"title": "Intro", "content": "v1", "tags": ["go"]})
    ).json()
    status_url = f"/api/v1/articles/{version['article_id']}/versions/{version['id']}/status"

    published = await client.put(status_url, json={"status": "published"})

    assert published.status_code == 200
    assert published.json()["status"] == "published"
    assert published.json()["published_at"] is not None
    assert await tag_usage(client) == {"go": 1}

    archived = await client.put(status_url, json={"status": "archived_version"})

    assert archived.status_code == 200
    assert archived.json()["published_at"] is None
    assert await tag_usage(client) == {"go": 0}


async def test_invalid_status_is_bad_request(client):
    version = (
        await client.post("/api/v1/articles", json={"title": "Intro", "content": "v1", "tags": []})
    ).json()

    response = await client.put(
        f"/api/v1/articles/{version['article_id']}/versions/{version['id']}/status",
        json={"status": "live"},
    )

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "InvalidStatusError"
    assert data["details"] == {"status": "live"}


async def test_status_update_for_missing_version(client):
    version = (
        await client.post("/api/v1/articles", json={"title": "Intro", "content": "v1", "tags": []})
    ).json()

    response = await client.put(
        f"/api/v1/articles/{version['article_id']}/versions/999/status",
        json={"status": "published"},
    )

    assert response.status_code == 404
    assert response.json()["error"] == "VersionNotFoundError"
