"""
Evanescent Backend: User SQLAlchemy Model
===========================================

What:  ORM model for the `users` table (the credential store).
How:   Rows are created on signup and never updated or deleted afterwards.

Table Design Rationale:
    - Integer primary key: writeups reference it and claim URLs carry it
    - email UNIQUE: the database, not the service, enforces uniqueness, so two
      concurrent signups with the same email cannot both succeed
    - password_hash: opaque argon2id string, never serialized to clients
"""

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from evanescent.database import Base


class User(Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="argon2id hash; the plaintext is never stored",
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
