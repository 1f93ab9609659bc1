"""SQL implementation of CredentialStore."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from kyc_registry.core.errors import AlreadyExists, NotFound
from kyc_registry.db.tables import CredentialRow
from kyc_registry.models.credential import Credential, TrustLevel
from kyc_registry.repos.credential_store import CredentialUpdate


class SqlCredentialStore:
    """Satisfies the CredentialStore Protocol using SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def put(self, credential_id: int, record: Credential) -> None:
        if self._session.get(CredentialRow, credential_id) is not None:
            raise AlreadyExists(credential_id)
        self._session.add(_credential_to_row(credential_id, record))
        self._session.flush()

    def get(self, credential_id: int) -> Credential:
        return _row_to_credential(self._get_row(credential_id))

    def mutate(self, credential_id: int, fn: CredentialUpdate) -> Credential:
        stmt = (
            select(CredentialRow)
            .where(CredentialRow.id == credential_id)
            .with_for_update()
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise NotFound(credential_id)

        updated = fn(_row_to_credential(row))
        row.expires_at = updated.expires_at
        row.revoked = updated.revoked
        self._session.flush()
        return updated

    def exists(self, credential_id: int) -> bool:
        return self._session.get(CredentialRow, credential_id) is not None

    def _get_row(self, credential_id: int) -> CredentialRow:
        row = self._session.get(CredentialRow, credential_id)
        if row is None:
            raise NotFound(credential_id)
        return row


def _credential_to_row(credential_id: int, record: Credential) -> CredentialRow:
    return CredentialRow(
        id=credential_id,
        holder_id=record.holder_id,
        issued_at=record.issued_at,
        expires_at=record.expires_at,
        subject_hash=record.subject_hash,
        level=int(record.level),
        revoked=record.revoked,
    )


def _row_to_credential(row: CredentialRow) -> Credential:
    return Credential(
        id=row.id,
        holder_id=row.holder_id,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        subject_hash=bytes(row.subject_hash),
        level=TrustLevel(row.level),
        revoked=row.revoked,
    )
