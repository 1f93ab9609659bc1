from __future__ import annotations

from typing import Protocol

from kyc_registry.core.errors import DuplicateHolder


class HolderIndex(Protocol):
    """Holder address -> credential id, written once per holder.

    An entry records that the holder has *ever* received a credential,
    so revoked and expired credentials still occupy it.
    """

    def reserve(self, holder: str, credential_id: int) -> None:
        """Map ``holder`` to ``credential_id``; raises DuplicateHolder if taken."""
        ...

    def lookup(self, holder: str) -> int | None: ...


class InMemoryHolderIndex:
    def __init__(self) -> None:
        self._by_holder: dict[str, int] = {}

    def reserve(self, holder: str, credential_id: int) -> None:
        existing = self._by_holder.get(holder)
        if existing is not None:
            raise DuplicateHolder(holder, existing)
        self._by_holder[holder] = credential_id

    def lookup(self, holder: str) -> int | None:
        return self._by_holder.get(holder)
