from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system and
    handed to the authority gate as the caller identity.

        subject: ``sub`` claim, the caller's key or account id
        roles:   platform roles (admin, user)
    """

    subject: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles
