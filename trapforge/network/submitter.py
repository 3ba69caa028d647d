"""
Deployment submitter.

Sends a contract-creation transaction from the configured deployer account,
waits for inclusion and reads the actual cost back from the receipt.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import httpx

from ..config import NetworkConfig, SubmissionCredential
from ..data.models.deployment import CompiledUnit
from ..errors import NotInitialized, SubmissionError
from ..policy.request_gate import GateConfig, validate_network
from .abi import creation_payload
from .client import RpcClient, hex_to_int
from .estimation import CostEstimate, static_estimate, wei_to_eth

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    address: str
    tx_id: str
    cost: str
    resource_units: int
    unit_price: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "tx_id": self.tx_id,
            "cost": self.cost,
            "resource_units": self.resource_units,
            "unit_price": self.unit_price,
        }


class Submitter:
    """Submits compiled units to the supported network."""

    def __init__(
        self,
        network: NetworkConfig,
        credential: Optional[SubmissionCredential],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.network = network
        self.credential = credential
        self.rpc = RpcClient(
            network.rpc_url, timeout=network.request_timeout_seconds, transport=transport
        )
        self.signer: Optional[RpcClient] = None
        if credential is not None:
            token = credential.signer_token.get_secret_value() if credential.signer_token else None
            if credential.signer_url == network.rpc_url and token is None:
                self.signer = self.rpc
            else:
                self.signer = RpcClient(
                    credential.signer_url,
                    timeout=network.request_timeout_seconds,
                    token=token,
                    transport=transport,
                )

    async def close(self) -> None:
        await self.rpc.close()
        if self.signer is not None and self.signer is not self.rpc:
            await self.signer.close()

    def _gate_config(self) -> GateConfig:
        return GateConfig(
            supported_network_id=self.network.chain_id,
            supported_network_name=self.network.name,
        )

    async def submit(
        self,
        unit: CompiledUnit,
        constructor_args: Sequence[Any],
        network: int,
    ) -> SubmissionResult:
        """
        Deploy ``unit`` and wait for it to be included.

        Args:
            unit: Compiled unit to deploy
            constructor_args: Values for the unit's constructor, in order
            network: Target network id; must be the supported network

        Returns:
            SubmissionResult with the new address, transaction id and the
            cost read from the receipt

        Raises:
            ValidationError: If ``network`` is not the supported network
            NotInitialized: If no deployer credential is configured
            SubmissionError: If the transaction fails, reverts or is not
                included before the timeout
        """
        validate_network(network, self._gate_config())
        if self.credential is None or self.signer is None:
            raise NotInitialized(message="No deployer credential is configured")

        tx = {
            "from": self.credential.account,
            "data": creation_payload(unit.bytecode, unit.constructor_inputs, constructor_args),
        }
        logger.info(f"Submitting {unit.name} from {self.credential.account}")
        tx_hash = await self.signer.send_transaction(tx)
        if not tx_hash:
            raise SubmissionError(code="NO_TRANSACTION_ID", message="Signer returned no transaction id")

        receipt = await self._wait_for_receipt(tx_hash)
        status = hex_to_int(receipt.get("status"))
        if status is not None and status != 1:
            raise SubmissionError(
                code="TRANSACTION_REVERTED",
                message=f"Creation transaction {tx_hash} reverted",
            )
        address = receipt.get("contractAddress")
        if not address:
            raise SubmissionError(
                code="NO_CONTRACT_ADDRESS",
                message=f"Receipt for {tx_hash} carries no contract address",
            )

        resource_units = hex_to_int(receipt.get("gasUsed")) or 0
        unit_price = await self._unit_price(tx_hash, receipt)
        cost = wei_to_eth(resource_units * unit_price)
        logger.info(f"Deployed {unit.name} at {address} (tx {tx_hash}, cost {cost})")
        return SubmissionResult(
            address=address,
            tx_id=tx_hash,
            cost=cost,
            resource_units=resource_units,
            unit_price=unit_price,
        )

    async def verify(self, address: str) -> int:
        """Confirm code exists at ``address``; returns the code size in bytes."""
        code = await self.rpc.get_code(address)
        if not code or code in ("0x", "0x0"):
            raise SubmissionError(
                code="NO_CODE_AT_ADDRESS", message=f"No contract code found at {address}"
            )
        return (len(code) - 2) // 2

    async def estimate(
        self, unit: CompiledUnit, constructor_args: Sequence[Any] = ()
    ) -> CostEstimate:
        """Ask the network for a cost estimate, falling back to the static table."""
        tx: Dict[str, Any] = {
            "data": creation_payload(unit.bytecode, unit.constructor_inputs, constructor_args)
        }
        if self.credential is not None:
            tx["from"] = self.credential.account
        try:
            units = await self.rpc.estimate_gas(tx)
            price = await self.rpc.gas_price()
        except SubmissionError as e:
            logger.warning(f"Network estimate unavailable for {unit.name}: {e.message}")
            return static_estimate(unit.name)
        return CostEstimate(resource_units=units, cost=wei_to_eth(units * price), source="network")

    async def _wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.network.inclusion_timeout_seconds
        while True:
            receipt = await self.rpc.get_transaction_receipt(tx_hash)
            if receipt:
                return receipt
            if loop.time() >= deadline:
                raise SubmissionError(
                    code="INCLUSION_TIMEOUT",
                    message=f"Transaction {tx_hash} not included within "
                    f"{self.network.inclusion_timeout_seconds}s",
                )
            await asyncio.sleep(self.network.receipt_poll_interval_seconds)

    async def _unit_price(self, tx_hash: str, receipt: Dict[str, Any]) -> int:
        price = hex_to_int(receipt.get("effectiveGasPrice"))
        if price is None:
            tx = await self.rpc.get_transaction(tx_hash) or {}
            price = hex_to_int(tx.get("gasPrice"))
        if price is None:
            raise SubmissionError(
                code="NO_UNIT_PRICE", message=f"Cannot determine the price paid by {tx_hash}"
            )
        return price
