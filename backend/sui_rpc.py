"""Thin JSON-RPC client for a Sui fullnode."""
import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

logger = logging.getLogger(__name__)

FULLNODE_URLS = {
    'mainnet': 'https://fullnode.mainnet.sui.io:443',
    'testnet': 'https://fullnode.testnet.sui.io:443',
    'devnet': 'https://fullnode.devnet.sui.io:443',
    'localnet': 'http://127.0.0.1:9000',
}

# sui_multiGetObjects rejects more ids than this per request
MULTI_GET_BATCH_SIZE = 50

OBJECT_OPTIONS = {
    "showContent": True,
    "showOwner": True,
    "showType": True,
}


class SuiRpcError(Exception):
    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


def fullnode_url(network: str) -> str:
    try:
        return FULLNODE_URLS[network]
    except KeyError:
        raise ValueError(f"Unknown Sui network: {network}")


def move_event_type(package_id: str, event: str, module: str = 'suitter') -> str:
    return f"{package_id}::{module}::{event}"


class SuiRpcClient:
    def __init__(self, url: str, timeout: float = 30, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._request_id = 0

    def call(self, method: str, params: list) -> Any:
        """Make a JSON-RPC call and return its `result`."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise SuiRpcError(f"{method} failed: {e}")

        if response.status_code != 200:
            raise SuiRpcError(f"{method} returned HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            raise SuiRpcError(f"{method} returned a non-JSON body")
        if "error" in body:
            error = body["error"]
            raise SuiRpcError(
                f"Sui RPC error in {method}: {error.get('message', error)}",
                code=error.get("code"),
            )
        if "result" not in body:
            raise SuiRpcError(f"No result in {method} response")
        return body["result"]

    def close(self):
        self.session.close()

    # Objects

    def get_object(self, object_id: str, options: Optional[dict] = None) -> Dict[str, Any]:
        return self.call("sui_getObject", [object_id, options or OBJECT_OPTIONS])

    def multi_get_objects(self, object_ids: List[str], options: Optional[dict] = None) -> List[Dict[str, Any]]:
        results = []
        for start in range(0, len(object_ids), MULTI_GET_BATCH_SIZE):
            batch = object_ids[start:start + MULTI_GET_BATCH_SIZE]
            results.extend(self.call("sui_multiGetObjects", [batch, options or OBJECT_OPTIONS]))
        return results

    def get_dynamic_field_object(self, parent_id: str, name_type: str, value: Any) -> Dict[str, Any]:
        return self.call(
            "suix_getDynamicFieldObject",
            [parent_id, {"type": name_type, "value": value}],
        )

    # Events

    def query_events(
        self,
        event_type: str,
        cursor: Optional[dict] = None,
        limit: int = 50,
        descending: bool = True,
    ) -> Dict[str, Any]:
        return self.call(
            "suix_queryEvents",
            [{"MoveEventType": event_type}, cursor, limit, descending],
        )

    def iter_events(self, event_type: str, max_items: Optional[int] = 100,
                    page_size: int = 50) -> Iterator[Dict[str, Any]]:
        """Yield events newest first, following cursors until `max_items`.

        With `max_items=None` the whole stream is paged through.
        """
        cursor = None
        seen = 0
        while max_items is None or seen < max_items:
            limit = page_size if max_items is None else min(page_size, max_items - seen)
            page = self.query_events(event_type, cursor, limit)
            for event in page.get("data") or []:
                yield event
                seen += 1
                if max_items is not None and seen >= max_items:
                    return
            if not page.get("hasNextPage") or not page.get("nextCursor"):
                return
            cursor = page["nextCursor"]

    # Coins

    def get_balance(self, owner: str, coin_type: str = "0x2::sui::SUI") -> int:
        result = self.call("suix_getBalance", [owner, coin_type])
        return int(result["totalBalance"])

    def get_coins(self, owner: str, coin_type: str = "0x2::sui::SUI", limit: int = 50) -> List[Dict[str, Any]]:
        result = self.call("suix_getCoins", [owner, coin_type, None, limit])
        return result["data"]

    # Transactions

    def unsafe_move_call(
        self,
        signer: str,
        package_id: str,
        module: str,
        function: str,
        arguments: list,
        gas_budget: int,
        type_arguments: Optional[list] = None,
        gas: Optional[str] = None,
    ) -> str:
        """Have the fullnode build a Move-call transaction; returns base64 tx bytes."""
        result = self.call(
            "unsafe_moveCall",
            [signer, package_id, module, function, type_arguments or [], arguments, gas, str(gas_budget)],
        )
        return result["txBytes"]

    def unsafe_pay_sui(self, signer: str, coins: List[str], recipients: List[str],
                       amounts: List[int], gas_budget: int) -> str:
        result = self.call(
            "unsafe_paySui",
            [signer, coins, recipients, [str(a) for a in amounts], str(gas_budget)],
        )
        return result["txBytes"]

    def execute_transaction_block(self, tx_bytes: str, signatures: List[str]) -> Dict[str, Any]:
        options = {"showEffects": True, "showObjectChanges": True, "showEvents": True}
        logger.info("Executing transaction (%d signature(s))", len(signatures))
        return self.call(
            "sui_executeTransactionBlock",
            [tx_bytes, signatures, options, "WaitForLocalExecution"],
        )
