"""Registry error hierarchy.

Every failure raised by the registry leaves stored state unchanged.  The
HTTP layer maps these to status codes in the route handlers.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base exception for all credential registry errors."""


class Unauthorized(RegistryError):
    """Caller is not the registry's administrative authority."""

    def __init__(self, caller: str) -> None:
        super().__init__(f"caller {caller!r} is not authorized")
        self.caller = caller


class NotFound(RegistryError):
    """Operation targets a credential id that was never issued."""

    def __init__(self, credential_id: int) -> None:
        super().__init__(f"credential {credential_id} not found")
        self.credential_id = credential_id


class AlreadyExists(RegistryError):
    """A record is already stored under this credential id."""

    def __init__(self, credential_id: int) -> None:
        super().__init__(f"credential {credential_id} already exists")
        self.credential_id = credential_id


class DuplicateHolder(RegistryError):
    """Holder already received a credential (valid, expired or revoked)."""

    def __init__(self, holder: str, credential_id: int | None = None) -> None:
        super().__init__(f"holder {holder!r} already has a credential")
        self.holder = holder
        self.credential_id = credential_id


class SoulboundViolation(RegistryError):
    """Attempted custody change after initial issuance."""

    def __init__(
        self, credential_id: int, from_holder: str | None, to_holder: str | None
    ) -> None:
        super().__init__(f"credential {credential_id} is soulbound and cannot move")
        self.credential_id = credential_id
        self.from_holder = from_holder
        self.to_holder = to_holder


class CredentialValidationError(RegistryError, ValueError):
    """Issuance or extension arguments are out of range."""


class InvalidLevel(CredentialValidationError):
    pass


class InvalidDuration(CredentialValidationError):
    pass


class InvalidSubjectHash(CredentialValidationError):
    pass


class InvalidHolder(CredentialValidationError):
    pass
