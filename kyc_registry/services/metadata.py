from __future__ import annotations

from typing import Protocol


class MetadataResolver(Protocol):
    def resolve(self, credential_id: int) -> str: ...


class BaseUriResolver:
    """Locator = base URI + decimal id, e.g. ``https://kyc.example/sbt/7``.

    With no base URI configured every credential resolves to "".
    Existence is checked by the caller.
    """

    def __init__(self, base_uri: str = "") -> None:
        self.base_uri = base_uri

    def resolve(self, credential_id: int) -> str:
        if not self.base_uri:
            return ""
        return f"{self.base_uri}{credential_id}"
