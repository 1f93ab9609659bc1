"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in kyc_registry/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.

Column types are kept portable (no PostgreSQL-only types) so the same
tables run on SQLite in tests.
"""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    LargeBinary,
    SmallInteger,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from kyc_registry.db.engine import Base


class TokenOwnerRow(Base):
    """Token ledger: custody of each credential id."""

    __tablename__ = "token_owners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(String(128), nullable=False, index=True)


class CredentialRow(Base):
    __tablename__ = "credentials"
    __table_args__ = (
        CheckConstraint("expires_at >= issued_at", name="ck_credentials_expiry"),
        CheckConstraint("level IN (0, 1)", name="ck_credentials_level"),
    )

    id: Mapped[int] = mapped_column(
        Integer, ForeignKey("token_owners.id"), primary_key=True
    )
    holder_id: Mapped[str] = mapped_column(String(255), nullable=False)
    issued_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    subject_hash: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    level: Mapped[int] = mapped_column(SmallInteger, nullable=False)  # 0 basic|1 extended
    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class HolderIndexRow(Base):
    __tablename__ = "holder_index"

    # Primary key on holder enforces one entry per holder, even under
    # concurrent writers.
    holder: Mapped[str] = mapped_column(String(128), primary_key=True)
    credential_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("credentials.id"), nullable=False, unique=True
    )
