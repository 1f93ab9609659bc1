"""Credential lifecycle manager.

The state machine for soulbound KYC credentials:

    ACTIVE ──(time passes)──> EXPIRED ──(extend)──> ACTIVE
       │                         │
       └───────(revoke)──────────┴──> REVOKED   (terminal)

Mutating operations (issue, revoke, extend) pass the authority gate
first.  Every precondition is checked before the first write, and the
mutating section runs under a lock, so a failed call leaves the store,
the holder index and the ledger exactly as they were.

Read-only queries (is_valid, has_valid_credential, get_record, ...) skip
the gate.

Two behaviors are kept deliberately:
  - extend does not look at ``revoked``; a revoked credential's expiry can
    still move, but it never becomes valid again.
  - the holder index is write-once, so a holder whose credential was
    revoked cannot be issued a replacement.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime

from kyc_registry.core.errors import (
    DuplicateHolder,
    InvalidDuration,
    InvalidHolder,
    InvalidSubjectHash,
    NotFound,
    RegistryError,
)
from kyc_registry.core.metrics import CREDENTIAL_OPERATIONS, VALIDITY_CHECKS
from kyc_registry.models.credential import (
    MAX_TIMESTAMP,
    SUBJECT_HASH_SIZE,
    Credential,
    CredentialStatus,
    TrustLevel,
)
from kyc_registry.models.events import (
    CredentialExtended,
    CredentialIssued,
    CredentialRevoked,
)
from kyc_registry.models.principal import Principal
from kyc_registry.repos.credential_store import CredentialStore
from kyc_registry.repos.holder_index import HolderIndex
from kyc_registry.services.authority import AuthorityGate
from kyc_registry.services.events import EventSink
from kyc_registry.services.metadata import BaseUriResolver, MetadataResolver
from kyc_registry.services.token_ledger import TokenLedger

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

ZERO_ADDRESS = "0x" + "0" * 40


def system_clock() -> int:
    return int(datetime.now(UTC).timestamp())


def normalize_holder(holder: str) -> str:
    return holder.strip().lower()


def parse_subject_hash(value: bytes | str) -> bytes:
    """Accept 32 raw bytes or 64 hex characters (optionally 0x-prefixed)."""
    if isinstance(value, str):
        hex_str = value.strip()
        if hex_str[:2].lower() == "0x":
            hex_str = hex_str[2:]
        try:
            value = bytes.fromhex(hex_str)
        except ValueError:
            raise InvalidSubjectHash("subject_hash is not valid hex") from None
    if not isinstance(value, bytes) or len(value) != SUBJECT_HASH_SIZE:
        raise InvalidSubjectHash(f"subject_hash must be {SUBJECT_HASH_SIZE} bytes")
    return value


def _require_duration(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDuration(f"{name} must be an integer number of seconds")
    if value < 0:
        raise InvalidDuration(f"{name} must be non-negative (got {value})")
    return value


def _require_expiry(name: str, base: int, duration: int) -> None:
    if base + duration > MAX_TIMESTAMP:
        raise InvalidDuration(
            f"{name} of {duration}s pushes expiry past {MAX_TIMESTAMP}"
        )


def _require_holder(holder: str) -> str:
    normalized = normalize_holder(holder)
    if not normalized:
        raise InvalidHolder("holder must be non-empty")
    if normalized == ZERO_ADDRESS:
        raise InvalidHolder("holder cannot be the zero address")
    return normalized


class LifecycleManager:
    def __init__(
        self,
        *,
        store: CredentialStore,
        index: HolderIndex,
        ledger: TokenLedger,
        gate: AuthorityGate,
        events: EventSink,
        resolver: MetadataResolver | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self._store = store
        self._index = index
        self._ledger = ledger
        self._gate = gate
        self._events = events
        self._resolver = resolver or BaseUriResolver()
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def ledger(self) -> TokenLedger:
        return self._ledger

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def issue(
        self,
        caller: Principal,
        *,
        holder: str,
        holder_id: str,
        validity_period: int,
        subject_hash: bytes | str,
        level: TrustLevel | str | int,
    ) -> int:
        """Issue a credential to ``holder`` and return its id.

        Raises Unauthorized, InvalidLevel, InvalidDuration,
        InvalidSubjectHash, InvalidHolder or DuplicateHolder.
        """
        with self._lock:
            try:
                self._gate.require_authority(caller)
                tier = TrustLevel.parse(level)
                period = _require_duration("validity_period", validity_period)
                digest = parse_subject_hash(subject_hash)
                address = _require_holder(holder)

                existing = self._index.lookup(address)
                if existing is not None:
                    raise DuplicateHolder(address, existing)

                now = self._clock()
                _require_expiry("validity_period", now, period)
                credential_id = self._ledger.create(address)
                record = Credential.new(
                    credential_id=credential_id,
                    holder_id=holder_id,
                    issued_at=now,
                    validity_period=period,
                    subject_hash=digest,
                    level=tier,
                )
                self._store.put(credential_id, record)
                self._index.reserve(address, credential_id)
            except RegistryError as exc:
                self._record_failure("issue", exc, holder=holder)
                raise

        CREDENTIAL_OPERATIONS.labels(operation="issue", outcome="ok").inc()
        logger.info(
            "Issued credential=%d holder=%s level=%s expires_at=%d",
            credential_id,
            address,
            tier.name.lower(),
            record.expires_at,
            extra={"credential_id": credential_id, "holder": address},
        )
        self._events.publish(
            CredentialIssued(holder=address, id=credential_id, holder_id=holder_id)
        )
        return credential_id

    def revoke(self, caller: Principal, credential_id: int) -> Credential:
        """Mark a credential revoked.  Revoking twice is a no-op success."""
        with self._lock:
            try:
                self._gate.require_authority(caller)
                record = self._store.mutate(credential_id, Credential.with_revoked)
            except RegistryError as exc:
                self._record_failure("revoke", exc, credential_id=credential_id)
                raise

        CREDENTIAL_OPERATIONS.labels(operation="revoke", outcome="ok").inc()
        logger.info(
            "Revoked credential=%d",
            credential_id,
            extra={"credential_id": credential_id},
        )
        self._events.publish(CredentialRevoked(id=credential_id))
        return record

    def extend(
        self, caller: Principal, credential_id: int, additional_time: int
    ) -> Credential:
        """Push ``expires_at`` forward by ``additional_time`` seconds.

        Works on revoked credentials too; validity still requires
        ``revoked`` to be false.
        """
        with self._lock:
            try:
                self._gate.require_authority(caller)
                extra_seconds = _require_duration("additional_time", additional_time)

                def _extended(current: Credential) -> Credential:
                    _require_expiry(
                        "additional_time", current.expires_at, extra_seconds
                    )
                    return current.with_extension(extra_seconds)

                record = self._store.mutate(credential_id, _extended)
            except RegistryError as exc:
                self._record_failure("extend", exc, credential_id=credential_id)
                raise

        CREDENTIAL_OPERATIONS.labels(operation="extend", outcome="ok").inc()
        logger.info(
            "Extended credential=%d by %ds expires_at=%d revoked=%s",
            credential_id,
            extra_seconds,
            record.expires_at,
            record.revoked,
            extra={"credential_id": credential_id},
        )
        self._events.publish(
            CredentialExtended(id=credential_id, new_expires_at=record.expires_at)
        )
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_valid(self, credential_id: int) -> bool:
        try:
            record = self._store.get(credential_id)
        except NotFound:
            valid = False
        else:
            valid = record.is_valid_at(self._clock())
        VALIDITY_CHECKS.labels(result="valid" if valid else "invalid").inc()
        return valid

    def has_valid_credential(self, holder: str) -> bool:
        credential_id = self.credential_of(holder)
        if credential_id is None:
            return False
        return self.is_valid(credential_id)

    def credential_of(self, holder: str) -> int | None:
        return self._index.lookup(normalize_holder(holder))

    def get_record(self, credential_id: int) -> Credential:
        return self._store.get(credential_id)

    def status(self, credential_id: int) -> CredentialStatus:
        return self._store.get(credential_id).status(self._clock())

    def owner_of(self, credential_id: int) -> str:
        owner = self._ledger.owner_of(credential_id)
        if owner is None:
            raise NotFound(credential_id)
        return owner

    def token_uri(self, credential_id: int) -> str:
        if not self._store.exists(credential_id):
            raise NotFound(credential_id)
        return self._resolver.resolve(credential_id)

    def now(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------

    @staticmethod
    def _record_failure(
        operation: str,
        exc: RegistryError,
        *,
        credential_id: int | None = None,
        holder: str | None = None,
    ) -> None:
        outcome = type(exc).__name__
        CREDENTIAL_OPERATIONS.labels(operation=operation, outcome=outcome).inc()
        logger.warning(
            "Rejected %s credential=%s holder=%s: %s",
            operation,
            credential_id,
            holder,
            exc,
            extra={"credential_id": credential_id, "holder": holder},
        )
