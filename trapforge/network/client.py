"""
JSON-RPC client for the ledger network.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import SubmissionError

logger = logging.getLogger(__name__)


def hex_to_int(value: Optional[str]) -> Optional[int]:
    """Decode a hex quantity from the node; malformed values are RPC errors."""
    if value is None:
        return None
    try:
        return int(value, 16)
    except (TypeError, ValueError) as e:
        raise SubmissionError(
            code="RPC_MALFORMED", message=f"Node returned a malformed quantity: {value!r}"
        ) from e


class RpcClient:
    """
    Minimal async JSON-RPC client over HTTP.

    Every call is bounded by the client timeout; transport and protocol
    failures are raised as SubmissionError.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {token}"} if token else {},
            transport=transport,
        )
        self._ids = itertools.count(1)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            response = await self.client.post(self.url, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise SubmissionError(code="RPC_TIMEOUT", message=f"{method} timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"RPC {method} failed: {e}")
            raise SubmissionError(code="RPC_UNREACHABLE", message=f"{method} failed: {e}") from e
        except ValueError as e:
            raise SubmissionError(
                code="RPC_MALFORMED", message=f"{method} returned invalid JSON"
            ) from e

        if payload.get("error"):
            error = payload["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise SubmissionError(code="RPC_ERROR", message=f"{method}: {message}")
        return payload.get("result")

    async def chain_id(self) -> int:
        return hex_to_int(await self.call("eth_chainId"))

    async def gas_price(self) -> int:
        return hex_to_int(await self.call("eth_gasPrice"))

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return hex_to_int(await self.call("eth_estimateGas", [tx]))

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        return await self.call("eth_sendTransaction", [tx])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionByHash", [tx_hash])

    async def get_code(self, address: str) -> str:
        return await self.call("eth_getCode", [address, "latest"])
