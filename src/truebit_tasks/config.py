"""Runtime configuration for task publishing and submission."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_RPC_URL = "http://localhost:8545"
DEFAULT_IPFS_API_URL = "http://localhost:5001"


@dataclass(slots=True)
class ChainSettings:
    """Blockchain node and signer settings."""

    rpc_url: str = DEFAULT_RPC_URL
    private_key: str | None = None
    request_timeout_seconds: float = 30.0
    tx_timeout_seconds: float = 120.0
    tx_poll_latency_seconds: float = 0.5


@dataclass(slots=True)
class IpfsSettings:
    """Content-addressed store settings."""

    api_url: str = DEFAULT_IPFS_API_URL
    request_timeout_seconds: float = 60.0
    max_retries: int = 3


@dataclass(slots=True)
class PathSettings:
    """Local filesystem locations."""

    task_artifacts_dir: Path = Path("artifacts-task/truebit")
    contract_artifacts_dir: Path = Path("artifacts")
    deployment_path: Path = Path("truebit.json")
    address_path: Path = Path(".address")


@dataclass(slots=True)
class EconomicsSettings:
    """Task contract economic parameters, in decimal token units."""

    min_deposit: Decimal = Decimal("100")
    solver_reward: Decimal = Decimal("100")
    verifier_tax: Decimal = Decimal("50")
    owner_fee: Decimal = Decimal("0")
    block_limit: int = 3
    token_decimals: int = 18


@dataclass(slots=True)
class VmSettings:
    """Execution-environment sizing registered with the code root."""

    code_type: int = 1
    memory_size: int = 25
    stack_size: int = 20
    globals_size: int = 8
    table_size: int = 20
    call_size: int = 10


@dataclass(slots=True)
class PollingSettings:
    """Output polling settings. A zero timeout waits indefinitely."""

    interval_seconds: float = 3.0
    timeout_seconds: float = 0.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    chain: ChainSettings = field(default_factory=ChainSettings)
    ipfs: IpfsSettings = field(default_factory=IpfsSettings)
    paths: PathSettings = field(default_factory=PathSettings)
    economics: EconomicsSettings = field(default_factory=EconomicsSettings)
    vm: VmSettings = field(default_factory=VmSettings)
    polling: PollingSettings = field(default_factory=PollingSettings)

    @classmethod
    def from_env(cls, address_path: Path | None = None) -> Settings:
        """Load settings from environment with defaults for a local development node."""

        return cls(
            chain=ChainSettings(
                rpc_url=os.getenv("TRUEBIT_TASKS_RPC_URL", DEFAULT_RPC_URL).strip(),
                private_key=_env_optional("TRUEBIT_TASKS_PRIVATE_KEY"),
                request_timeout_seconds=float(
                    os.getenv("TRUEBIT_TASKS_RPC_TIMEOUT_SECONDS", "30.0"),
                ),
                tx_timeout_seconds=float(os.getenv("TRUEBIT_TASKS_TX_TIMEOUT_SECONDS", "120.0")),
                tx_poll_latency_seconds=float(
                    os.getenv("TRUEBIT_TASKS_TX_POLL_LATENCY_SECONDS", "0.5"),
                ),
            ),
            ipfs=IpfsSettings(
                api_url=os.getenv("TRUEBIT_TASKS_IPFS_API_URL", DEFAULT_IPFS_API_URL).strip(),
                request_timeout_seconds=float(
                    os.getenv("TRUEBIT_TASKS_IPFS_TIMEOUT_SECONDS", "60.0"),
                ),
                max_retries=int(os.getenv("TRUEBIT_TASKS_IPFS_MAX_RETRIES", "3")),
            ),
            paths=PathSettings(
                task_artifacts_dir=Path(
                    os.getenv("TRUEBIT_TASKS_TASK_ARTIFACTS_DIR", "artifacts-task/truebit"),
                ),
                contract_artifacts_dir=Path(
                    os.getenv("TRUEBIT_TASKS_CONTRACT_ARTIFACTS_DIR", "artifacts"),
                ),
                deployment_path=Path(os.getenv("TRUEBIT_TASKS_DEPLOYMENT_PATH", "truebit.json")),
                address_path=address_path
                or Path(os.getenv("TRUEBIT_TASKS_ADDRESS_PATH", ".address")),
            ),
            economics=EconomicsSettings(
                min_deposit=_env_decimal("TRUEBIT_TASKS_MIN_DEPOSIT", "100"),
                solver_reward=_env_decimal("TRUEBIT_TASKS_SOLVER_REWARD", "100"),
                verifier_tax=_env_decimal("TRUEBIT_TASKS_VERIFIER_TAX", "50"),
                owner_fee=_env_decimal("TRUEBIT_TASKS_OWNER_FEE", "0"),
                block_limit=int(os.getenv("TRUEBIT_TASKS_BLOCK_LIMIT", "3")),
                token_decimals=int(os.getenv("TRUEBIT_TASKS_TOKEN_DECIMALS", "18")),
            ),
            vm=VmSettings(
                code_type=int(os.getenv("TRUEBIT_TASKS_CODE_TYPE", "1")),
                memory_size=int(os.getenv("TRUEBIT_TASKS_MEMORY_SIZE", "25")),
                stack_size=int(os.getenv("TRUEBIT_TASKS_STACK_SIZE", "20")),
                globals_size=int(os.getenv("TRUEBIT_TASKS_GLOBALS_SIZE", "8")),
                table_size=int(os.getenv("TRUEBIT_TASKS_TABLE_SIZE", "20")),
                call_size=int(os.getenv("TRUEBIT_TASKS_CALL_SIZE", "10")),
            ),
            polling=PollingSettings(
                interval_seconds=float(os.getenv("TRUEBIT_TASKS_POLL_INTERVAL_SECONDS", "3.0")),
                timeout_seconds=float(os.getenv("TRUEBIT_TASKS_POLL_TIMEOUT_SECONDS", "0")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any setting is out of range."""

        _validate_http_url("TRUEBIT_TASKS_RPC_URL", self.chain.rpc_url)
        _validate_http_url("TRUEBIT_TASKS_IPFS_API_URL", self.ipfs.api_url)
        if self.chain.request_timeout_seconds <= 0:
            raise ValueError("TRUEBIT_TASKS_RPC_TIMEOUT_SECONDS must be > 0.")
        if self.chain.tx_timeout_seconds <= 0:
            raise ValueError("TRUEBIT_TASKS_TX_TIMEOUT_SECONDS must be > 0.")
        if self.chain.tx_poll_latency_seconds <= 0:
            raise ValueError("TRUEBIT_TASKS_TX_POLL_LATENCY_SECONDS must be > 0.")
        if self.ipfs.request_timeout_seconds <= 0:
            raise ValueError("TRUEBIT_TASKS_IPFS_TIMEOUT_SECONDS must be > 0.")
        if self.ipfs.max_retries < 0:
            raise ValueError("TRUEBIT_TASKS_IPFS_MAX_RETRIES must be >= 0.")

        economics = self.economics
        for name, value in (
            ("TRUEBIT_TASKS_MIN_DEPOSIT", economics.min_deposit),
            ("TRUEBIT_TASKS_SOLVER_REWARD", economics.solver_reward),
            ("TRUEBIT_TASKS_VERIFIER_TAX", economics.verifier_tax),
            ("TRUEBIT_TASKS_OWNER_FEE", economics.owner_fee),
        ):
            if value < 0:
                raise ValueError(f"{name} must be >= 0.")
        if economics.block_limit <= 0:
            raise ValueError("TRUEBIT_TASKS_BLOCK_LIMIT must be a positive integer.")
        if not 0 <= economics.token_decimals <= 77:
            raise ValueError("TRUEBIT_TASKS_TOKEN_DECIMALS must be between 0 and 77.")

        for name, value in (
            ("TRUEBIT_TASKS_MEMORY_SIZE", self.vm.memory_size),
            ("TRUEBIT_TASKS_STACK_SIZE", self.vm.stack_size),
            ("TRUEBIT_TASKS_GLOBALS_SIZE", self.vm.globals_size),
            ("TRUEBIT_TASKS_TABLE_SIZE", self.vm.table_size),
            ("TRUEBIT_TASKS_CALL_SIZE", self.vm.call_size),
        ):
            if value <= 0:
                raise ValueError(f"{name} must be a positive integer.")

        if self.polling.interval_seconds <= 0:
            raise ValueError("TRUEBIT_TASKS_POLL_INTERVAL_SECONDS must be > 0.")
        if self.polling.timeout_seconds < 0:
            raise ValueError("TRUEBIT_TASKS_POLL_TIMEOUT_SECONDS must be >= 0.")


def _validate_http_url(name: str, value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            f"Invalid {name}: {value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default).strip()
    try:
        value = Decimal(raw)
    except InvalidOperation as error:
        raise ValueError(f"Invalid decimal value for {name}: {raw!r}") from error
    if not value.is_finite():
        raise ValueError(f"Invalid decimal value for {name}: {raw!r}")
    return value
