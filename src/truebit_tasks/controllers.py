"""Controllers for task CLI commands."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from truebit_tasks.artifacts import (
    load_contract_artifact,
    load_protocol_deployment,
    load_task_artifact,
    read_address,
)
from truebit_tasks.chain import ChainClient
from truebit_tasks.config import Settings
from truebit_tasks.contracts import TaskContract, TokenContract
from truebit_tasks.models import (
    ContractRef,
    PublishRequest,
    SubmissionRequest,
    TaskEconomics,
    VmParameters,
)
from truebit_tasks.publisher import inspect_task, publish_task
from truebit_tasks.storage import IpfsClient
from truebit_tasks.submission import query_fees, submit_task
from truebit_tasks.units import format_units, to_atomic

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PublishCommand:
    """CLI inputs for publish command."""

    task_name: str
    contract_name: str
    address_path: Path | None
    upload_name: str = "task.wasm"


@dataclass(slots=True)
class SubmitCommand:
    """CLI inputs for submit command."""

    task_input: str
    contract_name: str
    entry_point: str
    address_path: Path | None
    poll_interval_seconds: float | None = None
    timeout_seconds: float | None = None


@dataclass(slots=True)
class FeesCommand:
    """CLI inputs for fees command."""

    contract_name: str
    address_path: Path | None


@dataclass(slots=True)
class InspectCommand:
    """CLI inputs for inspect command."""

    task_name: str


class TaskCliController:
    """Coordinates publish and submission command execution."""

    def __init__(self, emit: Callable[[str], None] = print) -> None:
        self._emit = emit

    def publish(self, command: PublishCommand) -> list[str]:
        settings = _settings(command.address_path)
        self._emit("Loading task...")
        artifact = load_task_artifact(settings.paths.task_artifacts_dir, command.task_name)
        request = PublishRequest(
            artifact=artifact,
            contract=load_contract_artifact(
                settings.paths.contract_artifacts_dir,
                command.contract_name,
            ),
            deployment=load_protocol_deployment(settings.paths.deployment_path),
            vm=_vm_parameters(settings),
            economics=_task_economics(settings),
            address_path=settings.paths.address_path,
            upload_name=command.upload_name,
        )
        chain = ChainClient.from_settings(settings.chain)
        with IpfsClient(
            settings.ipfs.api_url,
            timeout_seconds=settings.ipfs.request_timeout_seconds,
            max_retries=settings.ipfs.max_retries,
        ) as storage:
            result = publish_task(chain, storage, request, emit=self._emit)

        return [
            "Publish completed: "
            f"task={artifact.name} size={artifact.size} "
            f"cid={result.stored_file.cid} root={result.integrity_root} "
            f"nonce={result.nonce} file_id={result.file_id}",
            f"Address written to {settings.paths.address_path}",
        ]

    def submit(self, command: SubmitCommand) -> list[str]:
        settings = _settings(command.address_path)
        timeout = (
            command.timeout_seconds
            if command.timeout_seconds is not None
            else settings.polling.timeout_seconds
        )
        request = SubmissionRequest(
            contract_address=read_address(settings.paths.address_path),
            contract=load_contract_artifact(
                settings.paths.contract_artifacts_dir,
                command.contract_name,
            ),
            deployment=load_protocol_deployment(settings.paths.deployment_path),
            task_input=command.task_input,
            entry_point=command.entry_point,
            poll_interval_seconds=(
                command.poll_interval_seconds
                if command.poll_interval_seconds is not None
                else settings.polling.interval_seconds
            ),
            timeout_seconds=timeout or None,
            token_decimals=settings.economics.token_decimals,
        )
        chain = ChainClient.from_settings(settings.chain)
        stop_event = threading.Event()
        result = submit_task(
            chain,
            request,
            emit=self._emit,
            stop_event=stop_event,
            wait_guard=lambda: _stop_on_signals(stop_event),
        )
        return [f"Completed after {result.polls} output queries."]

    def fees(self, command: FeesCommand) -> list[str]:
        settings = _settings(command.address_path)
        decimals = settings.economics.token_decimals
        address = read_address(settings.paths.address_path)
        contract = load_contract_artifact(
            settings.paths.contract_artifacts_dir,
            command.contract_name,
        )
        deployment = load_protocol_deployment(settings.paths.deployment_path)
        chain = ChainClient.from_settings(settings.chain)
        task = TaskContract(chain, ContractRef(address, contract.abi))
        token = TokenContract(chain, deployment.tru)
        quote = query_fees(chain, task, token)
        allowance = token.allowance(chain.account, task.address)
        return [
            f"Contract address: {task.address}",
            f"Signer: {chain.account}",
            f"TRU balance: {format_units(quote.token_balance, decimals)}",
            f"TRU allowance: {format_units(allowance, decimals)}",
            f"ETH balance: {format_units(chain.native_balance())}",
            f"Protocol fee: {format_units(quote.protocol_fee, decimals)} TRU",
            f"Platform fee: {format_units(quote.platform_fee)} ETH",
        ]

    def inspect(self, command: InspectCommand) -> list[str]:
        settings = _settings(None)
        inspection = inspect_task(settings.paths.task_artifacts_dir, command.task_name)
        return [
            f"Task: {inspection.name}",
            f"Size: {inspection.size} bytes",
            f"Integrity root: {inspection.integrity_root}",
            f"Code root: {inspection.code_root}",
        ]


def _settings(address_path: Path | None) -> Settings:
    settings = Settings.from_env(address_path=address_path)
    settings.validate()
    return settings


def _vm_parameters(settings: Settings) -> VmParameters:
    vm = settings.vm
    return VmParameters(
        code_type=vm.code_type,
        memory_size=vm.memory_size,
        stack_size=vm.stack_size,
        globals_size=vm.globals_size,
        table_size=vm.table_size,
        call_size=vm.call_size,
    )


def _task_economics(settings: Settings) -> TaskEconomics:
    economics = settings.economics
    decimals = economics.token_decimals
    return TaskEconomics(
        min_deposit=to_atomic(economics.min_deposit, decimals),
        solver_reward=to_atomic(economics.solver_reward, decimals),
        verifier_tax=to_atomic(economics.verifier_tax, decimals),
        owner_fee=to_atomic(economics.owner_fee, decimals),
        block_limit=economics.block_limit,
    )


@contextmanager
def _stop_on_signals(stop_event: threading.Event) -> Iterator[None]:
    if not hasattr(signal, "SIGINT"):
        yield
        return

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum: int, _: object | None) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        logger.warning("Received %s, stopping output wait", name)
        stop_event.set()

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except ValueError:
        # Signal handlers can only be installed in main thread.
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)
