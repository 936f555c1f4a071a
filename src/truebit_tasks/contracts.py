"""Typed handles over the registry, token and task contracts."""

from __future__ import annotations

from typing import Any

from hexbytes import HexBytes
from web3 import Web3
from web3.types import TxReceipt

from truebit_tasks.chain import ChainClient
from truebit_tasks.models import ContractRef, VmParameters


def _to_hex32(value: Any) -> str:
    return "0x" + bytes(HexBytes(value)).rjust(32, b"\x00").hex()


class FilesystemRegistry:
    """Filesystem contract recording file metadata and code roots."""

    def __init__(self, chain: ChainClient, ref: ContractRef) -> None:
        self._chain = chain
        self.address = ref.address
        self._contract = chain.contract(ref.address, ref.abi)

    def add_ipfs_file(
        self,
        *,
        name: str,
        size: int,
        ipfs_hash: str,
        root: str,
        nonce: int,
    ) -> TxReceipt:
        fn = self._contract.functions.addIpfsFile(name, size, ipfs_hash, HexBytes(root), nonce)
        return self._chain.transact(fn, label="addIpfsFile")

    def set_code_root(self, *, nonce: int, code_root: str, vm: VmParameters) -> TxReceipt:
        # Argument order follows the contract: stack size precedes memory size.
        fn = self._contract.functions.setCodeRoot(
            nonce,
            HexBytes(code_root),
            vm.code_type,
            vm.stack_size,
            vm.memory_size,
            vm.globals_size,
            vm.table_size,
            vm.call_size,
        )
        return self._chain.transact(fn, label="setCodeRoot")

    def calculate_id(self, nonce: int) -> str:
        return _to_hex32(self._chain.call(self._contract.functions.calculateId(nonce)))

    def get_code_root(self, file_id: str) -> str:
        return _to_hex32(self._chain.call(self._contract.functions.getCodeRoot(HexBytes(file_id))))


class TokenContract:
    """ERC-20 token used to pay protocol fees."""

    def __init__(self, chain: ChainClient, ref: ContractRef) -> None:
        self._chain = chain
        self.address = ref.address
        self._contract = chain.contract(ref.address, ref.abi)

    def balance_of(self, owner: str) -> int:
        owner = Web3.to_checksum_address(owner)
        return int(self._chain.call(self._contract.functions.balanceOf(owner)))

    def allowance(self, owner: str, spender: str) -> int:
        fn = self._contract.functions.allowance(
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(spender),
        )
        return int(self._chain.call(fn))

    def approve(self, spender: str, amount: int) -> TxReceipt:
        fn = self._contract.functions.approve(Web3.to_checksum_address(spender), amount)
        return self._chain.transact(fn, label="approve")


class TaskContract:
    """Per-task contract accepting inputs and exposing outputs."""

    def __init__(self, chain: ChainClient, ref: ContractRef) -> None:
        self._chain = chain
        self.address = ref.address
        self._contract = chain.contract(ref.address, ref.abi)

    def protocol_fee(self) -> int:
        return int(self._chain.call(self._contract.functions.protocolFee()))

    def platform_fee(self) -> int:
        return int(self._chain.call(self._contract.functions.platformFee()))

    def submit(self, entry_point: str, data: bytes, *, value: int) -> TxReceipt:
        fn = self._contract.get_function_by_name(entry_point)(data)
        return self._chain.transact(fn, value=value, label=entry_point)

    def get_output(self, data: bytes) -> bytes:
        return bytes(self._chain.call(self._contract.functions.getOutput(data)))
