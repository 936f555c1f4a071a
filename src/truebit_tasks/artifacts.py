"""Local artifact loading and the persisted contract address file."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from web3 import Web3

from truebit_tasks.models import ContractArtifact, ContractRef, ProtocolDeployment, TaskArtifact

logger = logging.getLogger(__name__)

_CODE_ROOT_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_PROTOCOL_CONTRACTS = ("filesystem", "incentive", "tru")


class ArtifactError(ValueError):
    """Raised when a local artifact exists but cannot be used."""


def load_task_artifact(artifact_dir: Path, task_name: str) -> TaskArtifact:
    """Read ``<task>.wasm`` and ``<task>.wasm.json`` from ``artifact_dir``."""

    wasm_path = artifact_dir / f"{task_name}.wasm"
    info_path = artifact_dir / f"{task_name}.wasm.json"
    code = wasm_path.read_bytes()
    metadata = _read_json(info_path)

    vm = metadata.get("vm")
    code_root = vm.get("code") if isinstance(vm, dict) else None
    if not isinstance(code_root, str) or not _CODE_ROOT_RE.match(code_root):
        raise ArtifactError(
            f"Task metadata {info_path} must contain vm.code as a 0x-prefixed 32-byte hex string.",
        )
    logger.info("Loaded task %s: %d bytes, code root %s", task_name, len(code), code_root)
    return TaskArtifact(
        name=task_name,
        wasm_path=wasm_path,
        code=code,
        code_root=code_root.lower(),
        metadata=metadata,
    )


def contract_artifact_path(artifacts_dir: Path, contract_name: str) -> Path:
    return artifacts_dir / "contracts" / f"{contract_name}.sol" / f"{contract_name}.json"


def load_contract_artifact(artifacts_dir: Path, contract_name: str) -> ContractArtifact:
    """Read the ABI and creation bytecode of a compiled contract."""

    path = contract_artifact_path(artifacts_dir, contract_name)
    payload = _read_json(path)
    abi = payload.get("abi")
    if not isinstance(abi, list):
        raise ArtifactError(f"Contract artifact {path} has no abi list.")
    bytecode = payload.get("bytecode", "")
    if not isinstance(bytecode, str):
        raise ArtifactError(f"Contract artifact {path} has a non-string bytecode.")
    return ContractArtifact(name=contract_name, abi=abi, bytecode=bytecode)


def load_protocol_deployment(path: Path) -> ProtocolDeployment:
    """Read addresses and ABIs of the filesystem, incentive and token contracts."""

    payload = _read_json(path)
    refs: dict[str, ContractRef] = {}
    for key in _PROTOCOL_CONTRACTS:
        entry = payload.get(key)
        if not isinstance(entry, dict):
            raise ArtifactError(f"Deployment manifest {path} is missing the {key!r} contract.")
        address = entry.get("address")
        abi = entry.get("abi")
        if not isinstance(address, str) or not Web3.is_address(address):
            raise ArtifactError(f"Deployment manifest {path}: invalid {key}.address {address!r}")
        if not isinstance(abi, list):
            raise ArtifactError(f"Deployment manifest {path}: {key}.abi must be a list.")
        refs[key] = ContractRef(address=Web3.to_checksum_address(address), abi=abi)
    return ProtocolDeployment(**refs)


def write_address(path: Path, address: str) -> None:
    """Persist ``address`` as the only content of ``path``."""

    path.write_text(address, encoding="utf-8")
    logger.info("Wrote contract address %s to %s", address, path)


def read_address(path: Path) -> str:
    """Read the contract address written by a previous publish run."""

    address = path.read_text(encoding="utf-8").strip()
    if not Web3.is_address(address):
        raise ArtifactError(f"Address file {path} does not contain a valid address: {address!r}")
    return address


def _read_json(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as error:
        raise ArtifactError(f"Invalid JSON in {path}: {error}") from error
    if not isinstance(payload, dict):
        raise ArtifactError(f"Expected a JSON object in {path}.")
    return payload
