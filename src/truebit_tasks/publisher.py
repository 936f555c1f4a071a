"""Publisher workflow: upload, register and deploy a task contract."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from truebit_tasks.artifacts import load_task_artifact, write_address
from truebit_tasks.chain import ChainClient, ChainError
from truebit_tasks.contracts import FilesystemRegistry
from truebit_tasks.merkle import merkle_root_hex
from truebit_tasks.models import PublishRequest, PublishResult, StoredFile, TaskInspection

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    """Protocol implemented by content-addressed store clients."""

    def add(self, name: str, content: bytes) -> StoredFile:
        """Store ``content`` under ``name`` and return its identifier."""


class RegistrationMismatchError(ChainError):
    """Raised when the registry does not report the code root just registered."""


def publish_task(
    chain: ChainClient,
    storage: ContentStore,
    request: PublishRequest,
    *,
    nonce: int | None = None,
    emit: Callable[[str], None] | None = None,
) -> PublishResult:
    """Publish one task binary and deploy its task contract.

    Steps run strictly in order and each write is confirmed before the next
    one starts. Any failure propagates; a failure after the file registration
    leaves that registration on chain.
    """

    say = emit or _noop
    artifact = request.artifact
    deployment = request.deployment

    say("Uploading task to IPFS...")
    stored = storage.add(request.upload_name, artifact.code)
    integrity_root = merkle_root_hex(artifact.code)
    nonce = nonce if nonce is not None else time.time_ns() // 1_000_000
    logger.info(
        "Task %s stored as %s (%s), root %s, nonce %d",
        artifact.name,
        stored.path,
        stored.cid,
        integrity_root,
        nonce,
    )

    say("Adding task to filesystem contract...")
    registry = FilesystemRegistry(chain, deployment.filesystem)
    registry.add_ipfs_file(
        name=stored.path,
        size=artifact.size,
        ipfs_hash=stored.cid,
        root=integrity_root,
        nonce=nonce,
    )
    registry.set_code_root(nonce=nonce, code_root=artifact.code_root, vm=request.vm)
    file_id = _derive_file_id(registry, nonce=nonce, code_root=artifact.code_root)

    say("Deploying...")
    economics = request.economics
    address = chain.deploy(
        request.contract,
        deployment.incentive.address,
        deployment.tru.address,
        deployment.filesystem.address,
        file_id,
        economics.block_limit,
        economics.min_deposit,
        economics.solver_reward,
        economics.verifier_tax,
        economics.owner_fee,
    )
    write_address(request.address_path, address)
    say(f"Contract address: {address}")

    return PublishResult(
        contract_address=address,
        file_id=file_id,
        nonce=nonce,
        stored_file=stored,
        integrity_root=integrity_root,
        code_root=artifact.code_root,
    )


def inspect_task(artifact_dir: Path, task_name: str) -> TaskInspection:
    """Describe a task binary as it would be registered, without network access."""

    artifact = load_task_artifact(artifact_dir, task_name)
    return TaskInspection(
        name=artifact.name,
        size=artifact.size,
        integrity_root=merkle_root_hex(artifact.code),
        code_root=artifact.code_root,
    )


def _derive_file_id(registry: FilesystemRegistry, *, nonce: int, code_root: str) -> str:
    file_id = registry.calculate_id(nonce)
    registered_root = registry.get_code_root(file_id)
    if registered_root.lower() != code_root.lower():
        raise RegistrationMismatchError(
            f"File {file_id} derived from nonce {nonce} has code root {registered_root}, "
            f"expected {code_root}",
        )
    logger.info("Registered file %s with code root %s", file_id, code_root)
    return file_id


def _noop(_: str) -> None:
    return None
