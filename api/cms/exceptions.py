"""Domain exceptions raised by the version workflow and tag store."""

from typing import Any, Optional


class CMSError(Exception):
    """Base exception for the CMS service layer."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(CMSError):
    pass


class ArticleNotFoundError(NotFoundError):
    def __init__(self, article_id: int):
        super().__init__("Article not found", {"article_id": article_id})


class VersionNotFoundError(NotFoundError):
    def __init__(self, article_id: int, version_id: int):
        super().__init__(
            "Article version not found",
            {"article_id": article_id, "version_id": version_id},
        )


class TagAlreadyExistsError(CMSError):
    def __init__(self, name: str):
        super().__init__("Tag already exists", {"name": name})


class InvalidStatusError(CMSError):
    def __init__(self, status: str):
        super().__init__("Invalid version status", {"status": status})


class InvalidTagNameError(CMSError):
    def __init__(self, name: str):
        super().__init__("Tag name is empty after normalization", {"name": name})
