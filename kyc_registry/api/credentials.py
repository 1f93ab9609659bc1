"""Credential registry endpoints.

Authority-only (bearer token + authority gate):
- POST /v1/credentials                  issue
- POST /v1/credentials/{id}/revoke      revoke (idempotent)
- POST /v1/credentials/{id}/extend      push expiry forward

Public (the leasing workflow's gate calls these):
- GET  /v1/credentials/{id}             full record + derived status
- GET  /v1/credentials/{id}/valid       validity predicate
- GET  /v1/credentials/{id}/metadata    off-chain metadata locator
- GET  /v1/holders/{holder}/credential  holder lookup

Any authenticated caller:
- POST /v1/credentials/{id}/transfer    always refused; credentials are soulbound
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from kyc_registry.api.dependencies import require_user
from kyc_registry.core.errors import (
    AlreadyExists,
    CredentialValidationError,
    DuplicateHolder,
    NotFound,
    RegistryError,
    SoulboundViolation,
    Unauthorized,
)
from kyc_registry.models.credential import MAX_TIMESTAMP, Credential, CredentialStatus
from kyc_registry.models.principal import Principal
from kyc_registry.services.lifecycle import LifecycleManager
from kyc_registry.services.registry import get_lifecycle_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/credentials", tags=["credentials"])
holders_router = APIRouter(prefix="/v1/holders", tags=["holders"])

Manager = Annotated[LifecycleManager, Depends(get_lifecycle_manager)]
Caller = Annotated[Principal, Depends(require_user)]


class CredentialIssueIn(BaseModel):
    holder: str = Field(max_length=128)
    holder_id: str = Field(min_length=1, max_length=255)
    validity_seconds: int = Field(ge=0, le=MAX_TIMESTAMP)
    subject_hash: str = Field(description="32-byte digest as 64 hex characters")
    level: str = Field(description="basic|extended")


class CredentialExtendIn(BaseModel):
    additional_seconds: int = Field(ge=0, le=MAX_TIMESTAMP)


class CredentialTransferIn(BaseModel):
    to_holder: str = Field(min_length=1, max_length=128)


class CredentialOut(BaseModel):
    id: int
    holder: str
    holder_id: str
    issued_at: int
    expires_at: int
    subject_hash: str
    level: str
    revoked: bool
    status: str
    valid: bool


class CredentialValidityOut(BaseModel):
    id: int
    valid: bool


class CredentialMetadataOut(BaseModel):
    id: int
    uri: str


class HolderCredentialOut(BaseModel):
    holder: str
    credential_id: int | None
    valid: bool


def _http_error(exc: RegistryError) -> HTTPException:
    if isinstance(exc, Unauthorized):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Caller is not the registry authority",
        )
    if isinstance(exc, NotFound):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="credential not found"
        )
    if isinstance(exc, (DuplicateHolder, AlreadyExists)):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="holder already has a credential",
        )
    if isinstance(exc, SoulboundViolation):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="credential is soulbound and cannot be transferred",
        )
    if isinstance(exc, CredentialValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _to_out(manager: LifecycleManager, record: Credential) -> CredentialOut:
    state = record.status(manager.now())
    return CredentialOut(
        id=record.id,
        holder=manager.owner_of(record.id),
        holder_id=record.holder_id,
        issued_at=record.issued_at,
        expires_at=record.expires_at,
        subject_hash=record.subject_hash.hex(),
        level=record.level.name.lower(),
        revoked=record.revoked,
        status=state.value,
        valid=state is CredentialStatus.ACTIVE,
    )


@router.post("", response_model=CredentialOut, status_code=status.HTTP_201_CREATED)
def issue_credential(
    body: CredentialIssueIn, caller: Caller, manager: Manager
) -> CredentialOut:
    try:
        credential_id = manager.issue(
            caller,
            holder=body.holder,
            holder_id=body.holder_id,
            validity_period=body.validity_seconds,
            subject_hash=body.subject_hash,
            level=body.level,
        )
        return _to_out(manager, manager.get_record(credential_id))
    except RegistryError as exc:
        raise _http_error(exc) from None


@router.post("/{credential_id}/revoke", response_model=CredentialOut)
def revoke_credential(
    credential_id: int, caller: Caller, manager: Manager
) -> CredentialOut:
    try:
        record = manager.revoke(caller, credential_id)
        return _to_out(manager, record)
    except RegistryError as exc:
        raise _http_error(exc) from None


@router.post("/{credential_id}/extend", response_model=CredentialOut)
def extend_credential(
    credential_id: int,
    body: CredentialExtendIn,
    caller: Caller,
    manager: Manager,
) -> CredentialOut:
    try:
        record = manager.extend(caller, credential_id, body.additional_seconds)
        return _to_out(manager, record)
    except RegistryError as exc:
        raise _http_error(exc) from None


@router.get("/{credential_id}", response_model=CredentialOut)
def get_credential(credential_id: int, manager: Manager) -> CredentialOut:
    try:
        return _to_out(manager, manager.get_record(credential_id))
    except RegistryError as exc:
        raise _http_error(exc) from None


@router.get("/{credential_id}/valid", response_model=CredentialValidityOut)
def check_credential(credential_id: int, manager: Manager) -> CredentialValidityOut:
    # Unknown ids are simply invalid, never a 404.
    return CredentialValidityOut(id=credential_id, valid=manager.is_valid(credential_id))


@router.get("/{credential_id}/metadata", response_model=CredentialMetadataOut)
def credential_metadata(credential_id: int, manager: Manager) -> CredentialMetadataOut:
    try:
        return CredentialMetadataOut(id=credential_id, uri=manager.token_uri(credential_id))
    except RegistryError as exc:
        raise _http_error(exc) from None


@router.post("/{credential_id}/transfer", status_code=status.HTTP_204_NO_CONTENT)
def transfer_credential(
    credential_id: int,
    body: CredentialTransferIn,
    caller: Caller,
    manager: Manager,
) -> None:
    logger.info(
        "Transfer requested credential=%d to=%s by=%s",
        credential_id,
        body.to_holder,
        caller.subject,
    )
    try:
        owner = manager.owner_of(credential_id)
        manager.ledger.transfer(owner, body.to_holder, credential_id)
    except RegistryError as exc:
        raise _http_error(exc) from None


@holders_router.get("/{holder}/credential", response_model=HolderCredentialOut)
def holder_credential(holder: str, manager: Manager) -> HolderCredentialOut:
    credential_id = manager.credential_of(holder)
    return HolderCredentialOut(
        holder=holder,
        credential_id=credential_id,
        valid=manager.has_valid_credential(holder),
    )
