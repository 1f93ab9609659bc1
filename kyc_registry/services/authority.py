"""Authority gate for mutating registry operations.

The gate only asks one question, ``is_authorized(caller)``, of an
AuthorityCheck.  Which callers count as the authority is decided by the
check implementation:

  RoleAuthority              : JWT carries the configured role (default "admin")
  SubjectAllowlistAuthority  : JWT subject is one of a fixed set of keys
                               (one entry = single key, several = any-of)

Swapping the check never touches the lifecycle manager.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from kyc_registry.core.config import Settings
from kyc_registry.core.errors import Unauthorized
from kyc_registry.models.principal import Principal

logger = logging.getLogger(__name__)


@runtime_checkable
class AuthorityCheck(Protocol):
    def is_authorized(self, caller: Principal) -> bool:
        """Return True if ``caller`` is the registry administrator."""
        ...


class RoleAuthority:
    def __init__(self, role: str = "admin") -> None:
        self.role = role

    def is_authorized(self, caller: Principal) -> bool:
        return caller.has_role(self.role)


class SubjectAllowlistAuthority:
    def __init__(self, subjects: Iterable[str]) -> None:
        self.subjects = frozenset(subjects)
        if not self.subjects:
            raise ValueError("allow-list authority needs at least one subject")

    def is_authorized(self, caller: Principal) -> bool:
        return caller.subject in self.subjects


class AuthorityGate:
    def __init__(self, check: AuthorityCheck) -> None:
        self._check = check

    def require_authority(self, caller: Principal) -> None:
        if not self._check.is_authorized(caller):
            logger.warning("Authority check failed for caller=%s", caller.subject)
            raise Unauthorized(caller.subject)


def build_authority_check(settings: Settings) -> AuthorityCheck:
    if settings.uses_allowlist_authority:
        return SubjectAllowlistAuthority(settings.authority_subjects)
    return RoleAuthority(settings.authority_role)
