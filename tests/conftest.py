"""Shared test fixtures: on-disk artifacts and an in-memory chain."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from web3 import Web3

from truebit_tasks.chain import TransactionRevertedError
from truebit_tasks.models import ContractArtifact, StoredFile

SIGNER = Web3.to_checksum_address("0x" + "11" * 20)
FILESYSTEM_ADDRESS = Web3.to_checksum_address("0x" + "a1" * 20)
INCENTIVE_ADDRESS = Web3.to_checksum_address("0x" + "b2" * 20)
TRU_ADDRESS = Web3.to_checksum_address("0x" + "c3" * 20)
TASK_ADDRESS = Web3.to_checksum_address("0x" + "d4" * 20)
CODE_ROOT = "0x" + "ab" * 32
FILE_ID = "0x" + "fe" * 32
WASM_BYTES = b"\x00asm\x01\x00\x00\x00" + bytes(range(100))


@dataclass(slots=True)
class FakeCall:
    address: str
    name: str
    args: tuple[Any, ...]

    @property
    def fn_name(self) -> str:
        return self.name


class _FakeFunctions:
    def __init__(self, address: str) -> None:
        self._address = address

    def __getattr__(self, name: str) -> Callable[..., FakeCall]:
        return lambda *args: FakeCall(self._address, name, args)


class FakeContract:
    def __init__(self, address: str) -> None:
        self.address = address
        self.functions = _FakeFunctions(address)

    def get_function_by_name(self, name: str) -> Callable[..., FakeCall]:
        return getattr(self.functions, name)


@dataclass
class FakeChain:
    """Stands in for ChainClient; records every call, transaction and deployment."""

    responses: dict[str, Any] = field(default_factory=dict)
    fail_on: set[str] = field(default_factory=set)
    account: str = SIGNER
    deployed_address: str = TASK_ADDRESS
    balance: int = 5 * 10**18
    events: list[tuple[str, str, tuple[Any, ...], int]] = field(default_factory=list)

    def contract(self, address: str, abi: list[dict[str, Any]]) -> FakeContract:
        return FakeContract(address)

    def call(self, fn: FakeCall) -> Any:
        self.events.append(("call", fn.name, fn.args, 0))
        response = self.responses[fn.name]
        return response(*fn.args) if callable(response) else response

    def transact(self, fn: FakeCall, *, value: int = 0, label: str = "") -> dict[str, Any]:
        self.events.append(("transact", fn.name, fn.args, value))
        if fn.name in self.fail_on:
            raise TransactionRevertedError(fn.name, "0x" + "00" * 32)
        return {"status": 1, "blockNumber": len(self.events)}

    def deploy(self, artifact: ContractArtifact, *args: Any) -> str:
        self.events.append(("deploy", artifact.name, args, 0))
        return self.deployed_address

    def native_balance(self) -> int:
        return self.balance

    def names(self, kind: str) -> list[str]:
        return [name for event_kind, name, _, _ in self.events if event_kind == kind]

    def args_of(self, kind: str, name: str) -> list[tuple[Any, ...]]:
        return [args for event_kind, n, args, _ in self.events if event_kind == kind and n == name]


@dataclass
class FakeStore:
    """Stands in for IpfsClient."""

    cid: str = "QmTaskCid"
    error: Exception | None = None
    added: list[tuple[str, bytes]] = field(default_factory=list)

    def add(self, name: str, content: bytes) -> StoredFile:
        if self.error is not None:
            raise self.error
        self.added.append((name, content))
        return StoredFile(path=name, cid=self.cid, size=len(content))


def _abi_function(name: str, inputs: list[str], outputs: list[str]) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": f"a{i}", "type": t} for i, t in enumerate(inputs)],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": "nonpayable",
    }


TASK_ABI = [
    _abi_function("protocolFee", [], ["uint256"]),
    _abi_function("platformFee", [], ["uint256"]),
    _abi_function("reverse", ["bytes"], []),
    _abi_function("getOutput", ["bytes"], ["bytes"]),
]


@pytest.fixture()
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Lay out task, contract and deployment artifacts and point settings at them."""

    task_dir = tmp_path / "artifacts-task" / "truebit"
    task_dir.mkdir(parents=True)
    (task_dir / "reverse.wasm").write_bytes(WASM_BYTES)
    (task_dir / "reverse.wasm.json").write_text(
        json.dumps({"vm": {"code": CODE_ROOT, "stack": 20}, "hash": "0x" + "00" * 32}),
        encoding="utf-8",
    )

    contract_dir = tmp_path / "artifacts" / "contracts" / "Reverse.sol"
    contract_dir.mkdir(parents=True)
    (contract_dir / "Reverse.json").write_text(
        json.dumps({"contractName": "Reverse", "abi": TASK_ABI, "bytecode": "0x6080"}),
        encoding="utf-8",
    )

    (tmp_path / "truebit.json").write_text(
        json.dumps(
            {
                "filesystem": {"address": FILESYSTEM_ADDRESS, "abi": []},
                "incentive": {"address": INCENTIVE_ADDRESS, "abi": []},
                "tru": {"address": TRU_ADDRESS.lower(), "abi": []},
            },
        ),
        encoding="utf-8",
    )

    monkeypatch.setenv("TRUEBIT_TASKS_TASK_ARTIFACTS_DIR", str(task_dir))
    monkeypatch.setenv("TRUEBIT_TASKS_CONTRACT_ARTIFACTS_DIR", str(tmp_path / "artifacts"))
    monkeypatch.setenv("TRUEBIT_TASKS_DEPLOYMENT_PATH", str(tmp_path / "truebit.json"))
    monkeypatch.setenv("TRUEBIT_TASKS_ADDRESS_PATH", str(tmp_path / ".address"))
    return tmp_path


@pytest.fixture()
def registry_responses() -> dict[str, Any]:
    return {
        "calculateId": bytes.fromhex(FILE_ID[2:]),
        "getCodeRoot": bytes.fromhex(CODE_ROOT[2:]),
    }


@pytest.fixture()
def fake_chain(registry_responses: dict[str, Any]) -> FakeChain:
    return FakeChain(responses=dict(registry_responses))


@pytest.fixture()
def fake_store() -> FakeStore:
    return FakeStore()
