from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from kyc_registry.core.errors import AlreadyExists, NotFound
from kyc_registry.models.credential import Credential

CredentialUpdate = Callable[[Credential], Credential]


class CredentialStore(Protocol):
    """Owns every credential record.  Records are never removed."""

    def put(self, credential_id: int, record: Credential) -> None: ...
    def get(self, credential_id: int) -> Credential: ...
    def mutate(self, credential_id: int, fn: CredentialUpdate) -> Credential: ...
    def exists(self, credential_id: int) -> bool: ...


class InMemoryCredentialStore:
    def __init__(self) -> None:
        self._by_id: dict[int, Credential] = {}

    def put(self, credential_id: int, record: Credential) -> None:
        if credential_id in self._by_id:
            raise AlreadyExists(credential_id)
        self._by_id[credential_id] = record

    def get(self, credential_id: int) -> Credential:
        record = self._by_id.get(credential_id)
        if record is None:
            raise NotFound(credential_id)
        return record

    def mutate(self, credential_id: int, fn: CredentialUpdate) -> Credential:
        """Replace a record with ``fn(record)``.

        Records are frozen, so a failing ``fn`` leaves the stored value
        untouched.
        """
        updated = fn(self.get(credential_id))
        self._by_id[credential_id] = updated
        return updated

    def exists(self, credential_id: int) -> bool:
        return credential_id in self._by_id
