"""Soulbound enforcement: every custody change after mint is rejected."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from kyc_registry.core.errors import NotFound, SoulboundViolation
from kyc_registry.models.principal import Principal
from kyc_registry.services.lifecycle import LifecycleManager
from kyc_registry.services.token_ledger import InMemoryTokenLedger
from kyc_registry.services.transfer_guard import TransferGuard
from tests.conftest import HOLDER_A, HOLDER_B, issue_basic


def _violations() -> float:
    value = REGISTRY.get_sample_value("soulbound_violations_total")
    return value if value is not None else 0.0


# ---- guard ----


def test_guard_allows_initial_assignment() -> None:
    TransferGuard().check(None, HOLDER_A, 1)


@pytest.mark.parametrize("to_holder", [HOLDER_B, HOLDER_A, None])
def test_guard_rejects_any_move_from_existing_holder(to_holder: str | None) -> None:
    with pytest.raises(SoulboundViolation) as exc_info:
        TransferGuard().check(HOLDER_A, to_holder, 7)
    assert exc_info.value.credential_id == 7
    assert exc_info.value.from_holder == HOLDER_A
    assert exc_info.value.to_holder == to_holder


def test_guard_counts_violations() -> None:
    before = _violations()
    with pytest.raises(SoulboundViolation):
        TransferGuard().check(HOLDER_A, HOLDER_B, 1)
    assert _violations() - before == 1


# ---- ledger paths ----


def test_ledger_mint_goes_through_guard(ledger: InMemoryTokenLedger) -> None:
    credential_id = ledger.create(HOLDER_A)
    assert credential_id == 1
    assert ledger.owner_of(credential_id) == HOLDER_A


def test_ledger_transfer_rejected(ledger: InMemoryTokenLedger) -> None:
    credential_id = ledger.create(HOLDER_A)
    with pytest.raises(SoulboundViolation):
        ledger.transfer(HOLDER_A, HOLDER_B, credential_id)
    assert ledger.owner_of(credential_id) == HOLDER_A
    assert ledger.balance_of(HOLDER_B) == 0


def test_ledger_transfer_to_self_rejected(ledger: InMemoryTokenLedger) -> None:
    credential_id = ledger.create(HOLDER_A)
    with pytest.raises(SoulboundViolation):
        ledger.transfer(HOLDER_A, HOLDER_A, credential_id)


def test_ledger_batch_transfer_moves_nothing(ledger: InMemoryTokenLedger) -> None:
    first = ledger.create(HOLDER_A)
    second = ledger.create(HOLDER_B)
    with pytest.raises(SoulboundViolation):
        ledger.batch_transfer(HOLDER_A, "0x" + "c" * 40, [first, second])
    assert ledger.owner_of(first) == HOLDER_A
    assert ledger.owner_of(second) == HOLDER_B


def test_ledger_batch_with_unknown_id_is_not_found(
    ledger: InMemoryTokenLedger,
) -> None:
    first = ledger.create(HOLDER_A)
    with pytest.raises(NotFound):
        ledger.batch_transfer(HOLDER_A, HOLDER_B, [first, 99])
    assert ledger.owner_of(first) == HOLDER_A


def test_ledger_burn_rejected(ledger: InMemoryTokenLedger) -> None:
    credential_id = ledger.create(HOLDER_A)
    with pytest.raises(SoulboundViolation):
        ledger.burn(credential_id)
    assert ledger.exists(credential_id) is True


def test_ledger_transfer_unknown_id_is_not_found(ledger: InMemoryTokenLedger) -> None:
    with pytest.raises(NotFound):
        ledger.transfer(HOLDER_A, HOLDER_B, 5)


# ---- through the manager ----


def test_issued_credential_cannot_move(
    manager: LifecycleManager, admin: Principal
) -> None:
    credential_id = issue_basic(manager, admin)
    with pytest.raises(SoulboundViolation):
        manager.ledger.transfer(HOLDER_A, HOLDER_B, credential_id)
    assert manager.owner_of(credential_id) == HOLDER_A
    assert manager.has_valid_credential(HOLDER_A) is True
    assert manager.has_valid_credential(HOLDER_B) is False


def test_revoked_credential_still_cannot_move(
    manager: LifecycleManager, admin: Principal
) -> None:
    credential_id = issue_basic(manager, admin)
    manager.revoke(admin, credential_id)
    with pytest.raises(SoulboundViolation):
        manager.ledger.transfer(HOLDER_A, HOLDER_B, credential_id)
    with pytest.raises(SoulboundViolation):
        manager.ledger.burn(credential_id)
    assert manager.owner_of(credential_id) == HOLDER_A
