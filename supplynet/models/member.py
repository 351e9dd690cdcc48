"""
Member model.

Represents a participant of the referral network.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from supplynet.config.ranks import MemberRank
from supplynet.models.base import Base
from supplynet.models.enums import MemberStatus


class Member(Base):
    """
    Member entity.

    Ancestry is stored twice: as referrer/parent links and as a
    materialized path. Only AncestryService writes either of them.

    Attributes:
        id: Primary key
        rank: Rank on the ladder (MemberRank value)
        status: ACTIVE / INACTIVE / SUSPENDED
        referrer_id: Member who referred this one (preferred upline link)
        parent_id: Structural parent (fallback upline link)
        path: Ancestor ids from root to the direct upline, member excluded.
            None when the path was never materialized.
        created_at: Registration time
        updated_at: Last ancestry/status change
    """

    __tablename__ = "members"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    rank: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MemberRank.NORMAL.value, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MemberStatus.ACTIVE.value, index=True
    )

    # Ancestry
    referrer_id: Mapped[int | None] = mapped_column(
        ForeignKey("members.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("members.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    path: Mapped[list[int] | None] = mapped_column(
        JSONB, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )

    @property
    def upline_id(self) -> int | None:
        """Nearest ancestor link, referrer preferred over parent."""
        return self.referrer_id or self.parent_id

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Member(id={self.id}, rank={self.rank}, "
            f"status={self.status}, upline_id={self.upline_id})>"
        )
