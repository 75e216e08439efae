"""Backend-paid execution: the sponsor wallet signs and pays gas."""
import logging
from typing import Any, Dict, Optional

import config
from keys import Ed25519Keypair
from sui_rpc import SuiRpcClient
from tx_builder import MoveCall

logger = logging.getLogger(__name__)


class SponsorError(Exception):
    pass


class TransactionFailed(SponsorError):
    def __init__(self, digest: str, error: str):
        super().__init__(f"Transaction {digest} failed: {error}")
        self.digest = digest
        self.error = error


def check_effects(result: Dict[str, Any]) -> Dict[str, Any]:
    status = ((result.get("effects") or {}).get("status") or {})
    if status.get("status") != "success":
        raise TransactionFailed(result.get("digest", "?"), status.get("error", "unknown error"))
    return result


class Sponsor:
    def __init__(self, rpc: SuiRpcClient, keypair: Ed25519Keypair, gas_budget: int = config.GAS_BUDGET):
        self.rpc = rpc
        self.keypair = keypair
        self.gas_budget = gas_budget

    @classmethod
    def from_secret_key(cls, rpc: SuiRpcClient, secret: Optional[str]):
        if not secret:
            raise SponsorError("SPONSOR_PRIVATE_KEY is not configured")
        try:
            keypair = Ed25519Keypair.from_secret_key(secret)
        except ValueError as e:
            raise SponsorError(f"SPONSOR_PRIVATE_KEY is invalid: {e}")
        return cls(rpc, keypair)

    @property
    def address(self) -> str:
        return self.keypair.sui_address()

    def balance(self) -> int:
        return self.rpc.get_balance(self.address)

    def _sign_and_execute(self, tx_bytes: str) -> Dict[str, Any]:
        signature = self.keypair.sign_transaction(tx_bytes)
        result = self.rpc.execute_transaction_block(tx_bytes, [signature])
        return check_effects(result)

    def execute(self, move_call: MoveCall) -> Dict[str, Any]:
        logger.info("Sponsor executing %s", move_call.target)
        tx_bytes = move_call.build(self.rpc, self.address, self.gas_budget)
        result = self._sign_and_execute(tx_bytes)
        logger.info("Transaction %s succeeded", result.get("digest"))
        return result

    def airdrop(self, recipient: str, amount: int = config.AIRDROP_AMOUNT_MIST) -> Dict[str, Any]:
        coins = self.rpc.get_coins(self.address)
        if not coins:
            raise SponsorError(f"Sponsor {self.address} has no SUI coins")
        tx_bytes = self.rpc.unsafe_pay_sui(
            self.address,
            [c["coinObjectId"] for c in coins],
            [recipient],
            [amount],
            self.gas_budget,
        )
        logger.info("Airdropping %d MIST to %s", amount, recipient)
        return self._sign_and_execute(tx_bytes)
