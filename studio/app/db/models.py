from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from studio.app.db.base import Base

ASSET_TYPES = ("image", "social_post", "article")
ASSET_STATUSES = ("draft", "published")
LEGACY_GROUP_ID = "legacy_migration"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Asset(Base):
    """A generated artifact: an image (base64), a social post or an article.

    Assets produced in one workflow session share a group_id.
    """
    __tablename__ = "assets"
    __table_args__ = (
        Index("group_id_idx", "group_id"),
        Index("status_idx", "status"),
        Index("created_at_idx", "created_at"),
        Index("group_id_created_at_idx", "group_id", "created_at"),
        Index("type_idx", "type"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    type: Mapped[str] = mapped_column(String(20))
    content: Mapped[str] = mapped_column(Text)
    prompt: Mapped[str] = mapped_column(Text)
    # JSON text; "metadata" is reserved on declarative classes
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    group_id: Mapped[str] = mapped_column(String, default=LEGACY_GROUP_ID)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
