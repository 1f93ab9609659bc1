"""Transfer guard: what makes a credential soulbound.

The token ledger calls ``check`` before committing ANY custody change,
including mint.  Only the first assignment (no prior holder) passes.
Transfers, batch transfers and burns all fail, so a credential stays with
the holder it was issued to for as long as the record exists.
"""

from __future__ import annotations

import logging

from kyc_registry.core.errors import SoulboundViolation
from kyc_registry.core.metrics import SOULBOUND_VIOLATIONS

logger = logging.getLogger(__name__)


class TransferGuard:
    def check(
        self, from_holder: str | None, to_holder: str | None, credential_id: int
    ) -> None:
        if from_holder is None:
            return

        SOULBOUND_VIOLATIONS.inc()
        logger.warning(
            "Rejected custody change credential=%s from=%s to=%s",
            credential_id,
            from_holder,
            to_holder,
            extra={"credential_id": credential_id, "holder": from_holder},
        )
        raise SoulboundViolation(credential_id, from_holder, to_holder)
