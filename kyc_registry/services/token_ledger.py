"""Token ledger: credential id allocation and custody.

This is generic ownership bookkeeping (create / owner_of / exists) plus
the transfer primitives a token ledger conventionally exposes.  Every
path that could reassign custody funnels through ``_move``, which asks
the TransferGuard first and only then commits.  Ids are sequential,
starting at 1.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kyc_registry.core.errors import NotFound
from kyc_registry.db.tables import TokenOwnerRow
from kyc_registry.services.transfer_guard import TransferGuard


class TokenLedger(Protocol):
    def create(self, holder: str) -> int: ...
    def owner_of(self, credential_id: int) -> str | None: ...
    def exists(self, credential_id: int) -> bool: ...
    def transfer(self, from_holder: str, to_holder: str, credential_id: int) -> None: ...
    def batch_transfer(
        self, from_holder: str, to_holder: str, credential_ids: Iterable[int]
    ) -> None: ...
    def burn(self, credential_id: int) -> None: ...
    def balance_of(self, holder: str) -> int: ...


class InMemoryTokenLedger:
    def __init__(self, guard: TransferGuard) -> None:
        self._guard = guard
        self._owners: dict[int, str] = {}
        self._next_id = 1

    def create(self, holder: str) -> int:
        credential_id = self._next_id
        self._move(None, holder, credential_id)
        self._next_id += 1
        return credential_id

    def owner_of(self, credential_id: int) -> str | None:
        return self._owners.get(credential_id)

    def exists(self, credential_id: int) -> bool:
        return credential_id in self._owners

    def balance_of(self, holder: str) -> int:
        return sum(1 for owner in self._owners.values() if owner == holder)

    def transfer(self, from_holder: str, to_holder: str, credential_id: int) -> None:
        self._move(self._require_owner(credential_id), to_holder, credential_id)

    def batch_transfer(
        self, from_holder: str, to_holder: str, credential_ids: Iterable[int]
    ) -> None:
        # Check every id before moving any of them: all or nothing.
        moves = [(self._require_owner(cid), cid) for cid in credential_ids]
        for owner, cid in moves:
            self._guard.check(owner, to_holder, cid)
        for _owner, cid in moves:
            self._owners[cid] = to_holder

    def burn(self, credential_id: int) -> None:
        self._move(self._require_owner(credential_id), None, credential_id)

    def _require_owner(self, credential_id: int) -> str:
        owner = self._owners.get(credential_id)
        if owner is None:
            raise NotFound(credential_id)
        return owner

    def _move(self, from_holder: str | None, to_holder: str | None, credential_id: int) -> None:
        self._guard.check(from_holder, to_holder, credential_id)
        if to_holder is None:
            del self._owners[credential_id]
        else:
            self._owners[credential_id] = to_holder


class SqlTokenLedger:
    """Satisfies the TokenLedger Protocol using SQLAlchemy.

    Writes happen in the caller's session; nothing is committed here.
    """

    def __init__(self, session: Session, guard: TransferGuard) -> None:
        self._session = session
        self._guard = guard

    def create(self, holder: str) -> int:
        row = TokenOwnerRow(owner=holder)
        self._session.add(row)
        self._session.flush()  # assigns row.id
        # Mint is the one custody change the guard lets through.
        self._guard.check(None, holder, row.id)
        return row.id

    def owner_of(self, credential_id: int) -> str | None:
        row = self._session.get(TokenOwnerRow, credential_id)
        if row is None:
            return None
        return row.owner

    def exists(self, credential_id: int) -> bool:
        return self._session.get(TokenOwnerRow, credential_id) is not None

    def balance_of(self, holder: str) -> int:
        stmt = select(func.count()).select_from(TokenOwnerRow).where(
            TokenOwnerRow.owner == holder
        )
        return self._session.execute(stmt).scalar_one()

    def transfer(self, from_holder: str, to_holder: str, credential_id: int) -> None:
        row = self._require_row(credential_id)
        self._guard.check(row.owner, to_holder, credential_id)
        row.owner = to_holder
        self._session.flush()

    def batch_transfer(
        self, from_holder: str, to_holder: str, credential_ids: Iterable[int]
    ) -> None:
        rows = [self._require_row(cid) for cid in credential_ids]
        for row in rows:
            self._guard.check(row.owner, to_holder, row.id)
        for row in rows:
            row.owner = to_holder
        self._session.flush()

    def burn(self, credential_id: int) -> None:
        row = self._require_row(credential_id)
        self._guard.check(row.owner, None, credential_id)
        self._session.delete(row)
        self._session.flush()

    def _require_row(self, credential_id: int) -> TokenOwnerRow:
        row = self._session.get(TokenOwnerRow, credential_id)
        if row is None:
            raise NotFound(credential_id)
        return row
