"""Blockchain client: signer selection, calls, confirmed transactions and deployments."""

from __future__ import annotations

import logging
from typing import Any

from eth_account import Account
from web3 import Web3
from web3.contract import Contract
from web3.contract.contract import ContractFunction
from web3.middleware import SignAndSendRawMiddlewareBuilder
from web3.types import TxReceipt

from truebit_tasks.config import ChainSettings
from truebit_tasks.models import ContractArtifact

logger = logging.getLogger(__name__)


class ChainError(RuntimeError):
    """Raised for blockchain client failures detected by this package."""


class TransactionRevertedError(ChainError):
    """Raised when a mined transaction reports a failed status."""

    def __init__(self, label: str, tx_hash: str) -> None:
        super().__init__(f"Transaction {label} reverted: {tx_hash}")
        self.label = label
        self.tx_hash = tx_hash


class ChainClient:
    """Web3 connection bound to one signing account.

    Created once per process and handed to each workflow; every write waits
    for its receipt before returning.
    """

    def __init__(
        self,
        w3: Web3,
        account: str,
        *,
        tx_timeout_seconds: float = 120.0,
        tx_poll_latency_seconds: float = 0.5,
    ) -> None:
        self.w3 = w3
        self.account = account
        self._tx_timeout = tx_timeout_seconds
        self._poll_latency = tx_poll_latency_seconds

    @classmethod
    def from_settings(cls, settings: ChainSettings) -> ChainClient:
        """Connect to the configured node and pick the signer.

        A configured private key signs locally; otherwise the node's first
        unlocked account is used, as on a local development node.
        """

        w3 = Web3(
            Web3.HTTPProvider(
                settings.rpc_url,
                request_kwargs={"timeout": settings.request_timeout_seconds},
            ),
        )
        if settings.private_key:
            signer = Account.from_key(settings.private_key)
            w3.middleware_onion.inject(SignAndSendRawMiddlewareBuilder.build(signer), layer=0)
            account = signer.address
        else:
            accounts = w3.eth.accounts
            if not accounts:
                raise ChainError(
                    f"Node at {settings.rpc_url} exposes no accounts. "
                    "Set TRUEBIT_TASKS_PRIVATE_KEY to sign locally.",
                )
            account = accounts[0]
        logger.info("Using signer %s on %s", account, settings.rpc_url)
        return cls(
            w3,
            Web3.to_checksum_address(account),
            tx_timeout_seconds=settings.tx_timeout_seconds,
            tx_poll_latency_seconds=settings.tx_poll_latency_seconds,
        )

    def contract(self, address: str, abi: list[dict[str, Any]]) -> Contract:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def call(self, fn: ContractFunction) -> Any:
        return fn.call({"from": self.account})

    def transact(self, fn: ContractFunction, *, value: int = 0, label: str = "") -> TxReceipt:
        """Send a contract transaction and wait for a successful receipt."""

        label = label or fn.fn_name
        tx: dict[str, Any] = {"from": self.account}
        if value:
            tx["value"] = value
        tx_hash = fn.transact(tx)
        return self._confirm(tx_hash, label)

    def deploy(self, artifact: ContractArtifact, *args: Any) -> str:
        """Deploy ``artifact`` with constructor ``args`` and return the new address."""

        if not artifact.bytecode or artifact.bytecode == "0x":
            raise ChainError(f"Contract {artifact.name} has no creation bytecode.")
        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        tx_hash = factory.constructor(*args).transact({"from": self.account})
        receipt = self._confirm(tx_hash, f"deploy {artifact.name}")
        address = receipt.get("contractAddress")
        if not address:
            raise ChainError(f"Deployment of {artifact.name} returned no contract address.")
        return Web3.to_checksum_address(address)

    def native_balance(self) -> int:
        return int(self.w3.eth.get_balance(self.account))

    def _confirm(self, tx_hash: Any, label: str) -> TxReceipt:
        tx_hex = Web3.to_hex(tx_hash)
        logger.info("Sent %s: %s", label, tx_hex)
        receipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash,
            timeout=self._tx_timeout,
            poll_latency=self._poll_latency,
        )
        if receipt.get("status") != 1:
            raise TransactionRevertedError(label, tx_hex)
        logger.info("Confirmed %s in block %s", label, receipt.get("blockNumber"))
        return receipt
