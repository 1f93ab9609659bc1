from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from kyc_registry.models.credential import MAX_TIMESTAMP
from kyc_registry.services import registry
from tests.conftest import (
    DAY,
    HOLDER_A,
    HOLDER_B,
    START,
    SUBJECT_HASH,
    FakeClock,
    auth,
)


def _issue_body(holder: str = HOLDER_A, **overrides: object) -> dict:
    body: dict[str, object] = {
        "holder": holder,
        "holder_id": "kyc-subject-1",
        "validity_seconds": 30 * DAY,
        "subject_hash": SUBJECT_HASH.hex(),
        "level": "basic",
    }
    body.update(overrides)
    return body


def _issue(client: TestClient, admin_token: str, **overrides: object) -> dict:
    resp = client.post(
        "/v1/credentials", json=_issue_body(**overrides), headers=auth(admin_token)
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---- issue ----


def test_issue_returns_created_record(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    data = _issue(client, admin_token)
    assert data == {
        "id": 1,
        "holder": HOLDER_A,
        "holder_id": "kyc-subject-1",
        "issued_at": START,
        "expires_at": START + 30 * DAY,
        "subject_hash": SUBJECT_HASH.hex(),
        "level": "basic",
        "revoked": False,
        "status": "active",
        "valid": True,
    }


def test_issue_extended_level_with_prefixed_hash(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    data = _issue(
        client, admin_token, level="EXTENDED", subject_hash="0x" + SUBJECT_HASH.hex()
    )
    assert data["level"] == "extended"
    assert data["subject_hash"] == SUBJECT_HASH.hex()


def test_issue_duplicate_holder_is_conflict(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    _issue(client, admin_token)
    resp = client.post(
        "/v1/credentials", json=_issue_body(), headers=auth(admin_token)
    )
    assert resp.status_code == 409


@pytest.mark.parametrize(
    "overrides",
    [
        {"level": "gold"},
        {"validity_seconds": -1},
        {"validity_seconds": 2**63},
        {"validity_seconds": MAX_TIMESTAMP - START + 1},
        {"subject_hash": "abcd"},
        {"holder": "0x" + "0" * 40},
        {"holder": "   "},
    ],
    ids=[
        "bad-level",
        "negative-validity",
        "validity-beyond-bigint",
        "expiry-beyond-bigint",
        "short-hash",
        "zero-address",
        "blank-holder",
    ],
)
def test_issue_rejects_invalid_arguments(
    client: TestClient, admin_token: str, app_clock: FakeClock, overrides: dict
) -> None:
    resp = client.post(
        "/v1/credentials", json=_issue_body(**overrides), headers=auth(admin_token)
    )
    assert resp.status_code == 422
    assert registry.lifecycle_manager.credential_of(HOLDER_A) is None


def test_issue_rejects_malformed_body(client: TestClient, admin_token: str) -> None:
    resp = client.post(
        "/v1/credentials", json={"holder": HOLDER_A}, headers=auth(admin_token)
    )
    assert resp.status_code == 422


# ---- reads ----


def test_get_credential(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    _issue(client, admin_token)
    resp = client.get("/v1/credentials/1")
    assert resp.status_code == 200
    assert resp.json()["holder"] == HOLDER_A


def test_get_unknown_credential_is_404(client: TestClient) -> None:
    assert client.get("/v1/credentials/999").status_code == 404


def test_valid_endpoint_unknown_id_is_false(client: TestClient) -> None:
    resp = client.get("/v1/credentials/999/valid")
    assert resp.status_code == 200
    assert resp.json() == {"id": 999, "valid": False}


def test_holder_lookup(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    _issue(client, admin_token)

    resp = client.get(f"/v1/holders/{HOLDER_A.upper().replace('0X', '0x')}/credential")
    assert resp.status_code == 200
    assert resp.json()["credential_id"] == 1
    assert resp.json()["valid"] is True

    resp = client.get(f"/v1/holders/{HOLDER_B}/credential")
    assert resp.json() == {"holder": HOLDER_B, "credential_id": None, "valid": False}


def test_metadata_defaults_to_empty_uri(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    _issue(client, admin_token)
    resp = client.get("/v1/credentials/1/metadata")
    assert resp.status_code == 200
    assert resp.json() == {"id": 1, "uri": ""}


def test_metadata_unknown_id_is_404(client: TestClient) -> None:
    assert client.get("/v1/credentials/5/metadata").status_code == 404


# ---- lifecycle over HTTP ----


def test_thirty_day_lifecycle(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    _issue(client, admin_token)
    assert client.get("/v1/credentials/1/valid").json()["valid"] is True

    app_clock.advance(31 * DAY)
    data = client.get("/v1/credentials/1").json()
    assert data["status"] == "expired"
    assert data["valid"] is False

    resp = client.post(
        "/v1/credentials/1/extend",
        json={"additional_seconds": 10 * DAY},
        headers=auth(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["expires_at"] == START + 40 * DAY
    assert resp.json()["status"] == "active"

    resp = client.post("/v1/credentials/1/revoke", headers=auth(admin_token))
    assert resp.status_code == 200
    assert resp.json()["status"] == "revoked"
    assert client.get("/v1/credentials/1/valid").json()["valid"] is False


def test_revoke_twice_succeeds(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    _issue(client, admin_token)
    first = client.post("/v1/credentials/1/revoke", headers=auth(admin_token))
    second = client.post("/v1/credentials/1/revoke", headers=auth(admin_token))
    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()


def test_extend_after_revoke_stays_invalid(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    _issue(client, admin_token)
    client.post("/v1/credentials/1/revoke", headers=auth(admin_token))
    resp = client.post(
        "/v1/credentials/1/extend",
        json={"additional_seconds": DAY},
        headers=auth(admin_token),
    )
    assert resp.status_code == 200
    assert resp.json()["revoked"] is True
    assert resp.json()["valid"] is False


def test_extend_negative_is_422(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    _issue(client, admin_token)
    resp = client.post(
        "/v1/credentials/1/extend",
        json={"additional_seconds": -5},
        headers=auth(admin_token),
    )
    assert resp.status_code == 422


@pytest.mark.parametrize("additional", [2**63, MAX_TIMESTAMP])
def test_extend_beyond_bigint_range_is_422(
    client: TestClient, admin_token: str, app_clock: FakeClock, additional: int
) -> None:
    _issue(client, admin_token)
    resp = client.post(
        "/v1/credentials/1/extend",
        json={"additional_seconds": additional},
        headers=auth(admin_token),
    )
    assert resp.status_code == 422
    assert client.get("/v1/credentials/1").json()["expires_at"] == START + 30 * DAY


def test_revoke_and_extend_unknown_id_is_404(
    client: TestClient, admin_token: str
) -> None:
    assert (
        client.post("/v1/credentials/7/revoke", headers=auth(admin_token)).status_code
        == 404
    )
    resp = client.post(
        "/v1/credentials/7/extend",
        json={"additional_seconds": DAY},
        headers=auth(admin_token),
    )
    assert resp.status_code == 404


# ---- soulbound ----


def test_transfer_is_always_refused(
    client: TestClient, admin_token: str, app_clock: FakeClock
) -> None:
    _issue(client, admin_token)
    resp = client.post(
        "/v1/credentials/1/transfer",
        json={"to_holder": HOLDER_B},
        headers=auth(admin_token),
    )
    assert resp.status_code == 409
    assert client.get("/v1/credentials/1").json()["holder"] == HOLDER_A


def test_transfer_unknown_id_is_404(client: TestClient, token: str) -> None:
    resp = client.post(
        "/v1/credentials/3/transfer", json={"to_holder": HOLDER_B}, headers=auth(token)
    )
    assert resp.status_code == 404
