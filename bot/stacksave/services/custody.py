"""Signing identities for chat users"""

import logging
from typing import Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount

logger = logging.getLogger(__name__)


class KeyCustody(Protocol):
    """Maps a stable sender identity to a signer handle"""

    async def signer_for(self, user_id: str) -> LocalAccount:
        ...


class OperatorKeyCustody:
    """
    Custodial mode: every user is served by the single operator key.

    Balances and transactions are therefore pooled under the operator
    address. Per-user accounts need a real custody backend (KMS/HSM or a
    wallet service) implementing KeyCustody.

    Nonces are not coordinated: concurrent messages read the same "pending"
    nonce, so one of two simultaneous transactions can fail with "nonce too
    low" or "replacement underpriced" and is reported as a failed operation.
    """

    def __init__(self, private_key: str) -> None:
        self.account: LocalAccount = Account.from_key(private_key)
        logger.info(f"Operator signer loaded: {self.account.address}")

    @property
    def address(self) -> str:
        return self.account.address

    async def signer_for(self, user_id: str) -> LocalAccount:
        return self.account
