"""
Sandbox resource types used across the test suite.

Article/Author mirror a small blog admin: Article has scopes, filters,
ordering, a slug and batch actions; Author is a bare resource type.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from resource_admin.models.base import Base, TimestampMixin, ValidationMixin
from resource_admin.resources import (
    BatchActionDef,
    BatchActionRedirects,
    BatchOutcome,
    FilterDef,
    FilterKind,
    ResourceDescriptor,
    ResourcePolicy,
    ResourceRegistry,
    ResourceService,
    ScopeDef,
    destroy_action,
)
from admin_shared.config.constants import Roles


# =============================================================================
# Models
# =============================================================================


class Author(ValidationMixin, Base):
    __tablename__ = "sandbox_author"
    __required__ = ("name",)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    articles: Mapped[list["Article"]] = relationship(back_populates="author")


class Article(ValidationMixin, TimestampMixin, Base):
    __tablename__ = "sandbox_article"
    __required__ = ("title",)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    slug: Mapped[Optional[str]] = mapped_column(String(200), unique=True, nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    author_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("sandbox_author.id"), nullable=True
    )

    author: Mapped[Optional[Author]] = relationship(back_populates="articles")

    def validate(self) -> None:
        super().validate()
        if self.title and len(self.title) > 200:
            self.add_error("title", "is too long")


# =============================================================================
# Batch handlers
# =============================================================================


def publish_articles(service, records) -> bool:
    for record in records:
        record.published = True
    service.db.commit()
    return True


def refuse(service, records) -> bool:
    return False


# =============================================================================
# Services
# =============================================================================


class ArticleService(ResourceService):
    descriptor = ResourceDescriptor(
        model=Article,
        index=("title", "published", "views"),
        show=("title", "body", "slug", "published", "views", "author"),
        form=("title", "body", "slug", "published", "views", "author"),
        export=("id", "title", "published", "views"),
        scopes=[
            ScopeDef("all", lambda q: q, default=True),
            ScopeDef("published", lambda q: q.where(Article.published.is_(True))),
            ScopeDef("unpublished", lambda q: q.where(Article.published.is_(False))),
        ],
        filters=[
            FilterDef("title"),
            FilterDef("q", FilterKind.CONTAINS, field="title"),
            FilterDef("views", FilterKind.RANGE),
            FilterDef("id", FilterKind.MULTISELECT),
            FilterDef("published", choices=(True, False)),
            FilterDef(
                "author",
                apply=lambda q, value: q.join(Article.author).where(Author.name == value),
            ),
        ],
        orderable=("title", "views", "created_at"),
        per_page=10,
        batch_actions=[
            destroy_action(except_=("published",)),
            BatchActionDef("publish", publish_articles, only=("all", "unpublished")),
            BatchActionDef("refuse", refuse),
        ],
        slug_field="slug",
    )


class RedirectingArticleService(BatchActionRedirects, ArticleService):
    def redirect_after_batch_action(self, action: str, outcome: BatchOutcome) -> str | None:
        if action == "publish":
            return "/admin/articles?scope=published"
        return None


class AuthorService(ResourceService):
    descriptor = ResourceDescriptor(
        model=Author,
        index=("name",),
        show=("name", "articles"),
        form=("name",),
        export=("id", "name"),
        orderable=("name",),
        default_order=(("name", "asc"),),
    )

    def resources_relation(self):
        return select(Author).where(Author.name != "hidden")


EDITOR_POLICY = ResourcePolicy(batch_roles={"publish": frozenset({Roles.EDITOR})})


def build_registry() -> ResourceRegistry:
    registry = ResourceRegistry()
    registry.register("articles", RedirectingArticleService, policy=EDITOR_POLICY)
    registry.register("authors", AuthorService)
    return registry


# Picked up by ``--module tests.sandbox`` and RESOURCE_MODULES
registry = build_registry()
