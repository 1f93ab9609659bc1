from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CredentialIssued:
    holder: str
    id: int
    holder_id: str

    name = "credential_issued"


@dataclass(frozen=True, slots=True)
class CredentialRevoked:
    id: int

    name = "credential_revoked"


@dataclass(frozen=True, slots=True)
class CredentialExtended:
    id: int
    new_expires_at: int

    name = "credential_extended"


CredentialEvent = CredentialIssued | CredentialRevoked | CredentialExtended
