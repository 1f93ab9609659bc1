"""Process-wide registry wiring.

The collaborators that live for the whole process (transfer guard,
authority gate, metadata resolver, event publisher) are built once here.
Stores, index and ledger depend on configuration:

  - no DATABASE_URL: one in-memory registry shared by every request
  - DATABASE_URL set: SQL repositories bound to a request-scoped session,
    with events held back until the session commits
"""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy.orm import Session

from kyc_registry.core.config import SETTINGS
from kyc_registry.db.engine import session_factory, session_scope
from kyc_registry.repos.credential_store import InMemoryCredentialStore
from kyc_registry.repos.holder_index import InMemoryHolderIndex
from kyc_registry.repos.sql_credential_store import SqlCredentialStore
from kyc_registry.repos.sql_holder_index import SqlHolderIndex
from kyc_registry.services.authority import AuthorityGate, build_authority_check
from kyc_registry.services.events import DeferredEvents, EventPublisher, EventSink
from kyc_registry.services.lifecycle import LifecycleManager
from kyc_registry.services.metadata import BaseUriResolver
from kyc_registry.services.token_ledger import InMemoryTokenLedger, SqlTokenLedger
from kyc_registry.services.transfer_guard import TransferGuard

transfer_guard = TransferGuard()
authority_gate = AuthorityGate(build_authority_check(SETTINGS))
metadata_resolver = BaseUriResolver(SETTINGS.metadata_base_uri)
event_publisher = EventPublisher()

credential_store = InMemoryCredentialStore()
holder_index = InMemoryHolderIndex()
token_ledger = InMemoryTokenLedger(transfer_guard)

lifecycle_manager = LifecycleManager(
    store=credential_store,
    index=holder_index,
    ledger=token_ledger,
    gate=authority_gate,
    events=event_publisher,
    resolver=metadata_resolver,
)


def build_sql_manager(session: Session, events: EventSink) -> LifecycleManager:
    return LifecycleManager(
        store=SqlCredentialStore(session),
        index=SqlHolderIndex(session),
        ledger=SqlTokenLedger(session, transfer_guard),
        gate=authority_gate,
        events=events,
        resolver=metadata_resolver,
    )


def get_lifecycle_manager() -> Generator[LifecycleManager, None, None]:
    """FastAPI dependency yielding the manager for this request."""
    if session_factory is None:
        yield lifecycle_manager
        return

    events = DeferredEvents(event_publisher)
    with session_scope(session_factory) as session:
        yield build_sql_manager(session, events)
    events.flush()
