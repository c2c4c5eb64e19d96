from .base import Base
from .article import Article
from .article_version import ArticleVersion, VersionStatus
from .tag import Tag, article_version_tags

__all__ = [
    "Base",
    "Article",
    "ArticleVersion",
    "VersionStatus",
    "Tag",
    "article_version_tags",
]
