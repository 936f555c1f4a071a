"""Domain models shared by the publisher and submission workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True, frozen=True)
class TaskArtifact:
    """Compiled task binary with its execution metadata."""

    name: str
    wasm_path: Path
    code: bytes
    code_root: str
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def size(self) -> int:
        return len(self.code)


@dataclass(slots=True, frozen=True)
class ContractArtifact:
    """Compiled contract ABI and creation bytecode."""

    name: str
    abi: list[dict[str, Any]]
    bytecode: str


@dataclass(slots=True, frozen=True)
class ContractRef:
    """Address and ABI of an already deployed contract."""

    address: str
    abi: list[dict[str, Any]]


@dataclass(slots=True, frozen=True)
class ProtocolDeployment:
    """External protocol contracts a task contract is wired to."""

    filesystem: ContractRef
    incentive: ContractRef
    tru: ContractRef


@dataclass(slots=True, frozen=True)
class VmParameters:
    """Execution-environment sizing registered together with the code root."""

    code_type: int
    memory_size: int
    stack_size: int
    globals_size: int
    table_size: int
    call_size: int


@dataclass(slots=True, frozen=True)
class TaskEconomics:
    """Task contract economic parameters in atomic token units."""

    min_deposit: int
    solver_reward: int
    verifier_tax: int
    owner_fee: int
    block_limit: int


@dataclass(slots=True, frozen=True)
class StoredFile:
    """Result of adding a buffer to the content-addressed store."""

    path: str
    cid: str
    size: int


@dataclass(slots=True)
class PublishRequest:
    """Everything the publisher workflow needs besides live clients."""

    artifact: TaskArtifact
    contract: ContractArtifact
    deployment: ProtocolDeployment
    vm: VmParameters
    economics: TaskEconomics
    address_path: Path
    upload_name: str = "task.wasm"


@dataclass(slots=True, frozen=True)
class PublishResult:
    """Outcome of one publisher run."""

    contract_address: str
    file_id: str
    nonce: int
    stored_file: StoredFile
    integrity_root: str
    code_root: str


@dataclass(slots=True, frozen=True)
class TaskInspection:
    """Offline view of a task binary as it would be registered."""

    name: str
    size: int
    integrity_root: str
    code_root: str


@dataclass(slots=True, frozen=True)
class FeeQuote:
    """Signer balance and current task fees, all in atomic units."""

    token_balance: int
    protocol_fee: int
    platform_fee: int


@dataclass(slots=True)
class SubmissionRequest:
    """Inputs for one task submission."""

    contract_address: str
    contract: ContractArtifact
    deployment: ProtocolDeployment
    task_input: str
    entry_point: str = "reverse"
    poll_interval_seconds: float = 3.0
    timeout_seconds: float | None = None
    token_decimals: int = 18


@dataclass(slots=True, frozen=True)
class SubmissionResult:
    """Decoded task output with the fees paid for it."""

    task_input: str
    output: bytes
    fees: FeeQuote
    polls: int

    @property
    def text(self) -> str:
        return self.output.decode("utf-8", errors="replace")
