"""
Evanescent Backend: Writeup SQLAlchemy Model
==============================================

What:  ORM model for the `writeups` table, the "bottles" users post, like and claim.
Who:   Mutated only by WriteupService through single conditional statements.

Claim state:
    claimed_by IS NULL        → Unclaimed
    claimed_by = <user id>    → ClaimedBy(user)

    The column holds at most one user id. Exclusivity is enforced by the
    `WHERE claimed_by IS NULL` guard on the claim UPDATE, not by a lock.

Invariants:
    - likes >= 0, guarded by the UNLIKE statement and a CHECK constraint
    - only the owner (user_id) may delete
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from evanescent.database import Base


class Writeup(Base):
    """A short post that can be liked and exclusively claimed."""

    __tablename__ = "writeups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owner; the only user allowed to delete the writeup",
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )

    likes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    claimed_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
        comment="Current claimant; NULL while the bottle is unclaimed",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("likes >= 0", name="ck_writeups_likes_non_negative"),
        Index("idx_writeups_created_at", created_at.desc()),
        Index("idx_writeups_claimed_by", "claimed_by"),
    )

    def __repr__(self) -> str:
        return (
            f"<Writeup(id={self.id}, user_id={self.user_id}, "
            f"likes={self.likes}, claimed_by={self.claimed_by})>"
        )
