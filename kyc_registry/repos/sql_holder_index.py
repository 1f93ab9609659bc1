"""SQL implementation of HolderIndex."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kyc_registry.core.errors import DuplicateHolder
from kyc_registry.db.tables import HolderIndexRow


class SqlHolderIndex:
    """Satisfies the HolderIndex Protocol using SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def reserve(self, holder: str, credential_id: int) -> None:
        existing = self.lookup(holder)
        if existing is not None:
            raise DuplicateHolder(holder, existing)

        # A concurrent writer can still win between lookup and flush; the
        # primary key turns that into a DuplicateHolder as well.
        self._session.add(HolderIndexRow(holder=holder, credential_id=credential_id))
        try:
            self._session.flush()
        except IntegrityError:
            raise DuplicateHolder(holder) from None

    def lookup(self, holder: str) -> int | None:
        row = self._session.get(HolderIndexRow, holder)
        if row is None:
            return None
        return row.credential_id
