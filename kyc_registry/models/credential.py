from __future__ import annotations

import enum
from dataclasses import dataclass, replace

from kyc_registry.core.errors import InvalidDuration, InvalidLevel

SUBJECT_HASH_SIZE = 32

# Timestamps are stored as signed 64-bit integers (BIGINT).
MAX_TIMESTAMP = 2**63 - 1


class TrustLevel(enum.IntEnum):
    """Depth of the KYC check behind a credential."""

    BASIC = 0
    EXTENDED = 1

    @classmethod
    def parse(cls, value: object) -> TrustLevel:
        """Coerce a name ("basic") or ordinal (0) into a TrustLevel.

        Raises InvalidLevel for anything outside the two tiers.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise InvalidLevel(f"unknown trust level {value!r}") from None
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise InvalidLevel(f"unknown trust level {value!r}") from None
        raise InvalidLevel(f"unknown trust level {value!r}")


class CredentialStatus(enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


@dataclass(frozen=True, slots=True)
class Credential:
    """Issued soulbound KYC credential.

    Status is never stored: it is derived from ``revoked`` and
    ``expires_at`` so a revoked record can't be reported as valid.
    """

    id: int
    holder_id: str  # real-world subject, not the ledger address
    issued_at: int
    expires_at: int
    subject_hash: bytes
    level: TrustLevel
    revoked: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", TrustLevel.parse(self.level))
        if not self.issued_at <= self.expires_at <= MAX_TIMESTAMP:
            raise InvalidDuration(
                f"expires_at {self.expires_at} must lie between issued_at "
                f"{self.issued_at} and {MAX_TIMESTAMP}"
            )

    @staticmethod
    def new(
        *,
        credential_id: int,
        holder_id: str,
        issued_at: int,
        validity_period: int,
        subject_hash: bytes,
        level: TrustLevel,
    ) -> Credential:
        return Credential(
            id=credential_id,
            holder_id=holder_id,
            issued_at=issued_at,
            expires_at=issued_at + validity_period,
            subject_hash=subject_hash,
            level=level,
        )

    def status(self, now: int) -> CredentialStatus:
        if self.revoked:
            return CredentialStatus.REVOKED
        if now > self.expires_at:
            return CredentialStatus.EXPIRED
        return CredentialStatus.ACTIVE

    def is_valid_at(self, now: int) -> bool:
        return self.status(now) is CredentialStatus.ACTIVE

    def with_revoked(self) -> Credential:
        return replace(self, revoked=True)

    def with_extension(self, additional_time: int) -> Credential:
        return replace(self, expires_at=self.expires_at + additional_time)
