from __future__ import annotations

import json
from pathlib import Path

import allure
import pytest
from conftest import CODE_ROOT, TRU_ADDRESS, WASM_BYTES
from web3 import Web3

from truebit_tasks.artifacts import (
    ArtifactError,
    load_contract_artifact,
    load_protocol_deployment,
    load_task_artifact,
    read_address,
    write_address,
)

pytestmark = [
    allure.epic("Task Publishing"),
    allure.feature("Local Artifacts"),
]


def test_load_task_artifact_reads_binary_and_code_root(project_dir: Path) -> None:
    artifact = load_task_artifact(project_dir / "artifacts-task" / "truebit", "reverse")

    assert artifact.name == "reverse"
    assert artifact.code == WASM_BYTES
    assert artifact.size == len(WASM_BYTES)
    assert artifact.code_root == CODE_ROOT
    assert artifact.metadata["vm"]["stack"] == 20


def test_load_task_artifact_missing_binary_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_task_artifact(tmp_path, "missing")


def test_load_task_artifact_rejects_metadata_without_code_root(tmp_path: Path) -> None:
    (tmp_path / "t.wasm").write_bytes(b"\x00asm")
    (tmp_path / "t.wasm.json").write_text(json.dumps({"vm": {}}), encoding="utf-8")

    with pytest.raises(ArtifactError, match="vm.code"):
        load_task_artifact(tmp_path, "t")


def test_load_task_artifact_rejects_invalid_json(tmp_path: Path) -> None:
    (tmp_path / "t.wasm").write_bytes(b"\x00asm")
    (tmp_path / "t.wasm.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ArtifactError, match="Invalid JSON"):
        load_task_artifact(tmp_path, "t")


def test_load_contract_artifact(project_dir: Path) -> None:
    contract = load_contract_artifact(project_dir / "artifacts", "Reverse")

    assert contract.name == "Reverse"
    assert contract.bytecode == "0x6080"
    assert {entry["name"] for entry in contract.abi} >= {"protocolFee", "getOutput"}


def test_load_protocol_deployment_checksums_addresses(project_dir: Path) -> None:
    deployment = load_protocol_deployment(project_dir / "truebit.json")

    assert deployment.tru.address == TRU_ADDRESS
    assert deployment.filesystem.abi == []


def test_load_protocol_deployment_requires_all_contracts(tmp_path: Path) -> None:
    path = tmp_path / "truebit.json"
    path.write_text(json.dumps({"filesystem": {"address": "0x" + "00" * 20, "abi": []}}))

    with pytest.raises(ArtifactError, match="'incentive'"):
        load_protocol_deployment(path)


def test_address_file_round_trip(tmp_path: Path) -> None:
    path = tmp_path / ".address"
    address = Web3.to_checksum_address("0x" + "5e" * 20)
    path.write_text("stale contents that are longer than an address", encoding="utf-8")

    write_address(path, address)

    assert path.read_text(encoding="utf-8") == address
    assert read_address(path) == address


def test_read_address_trims_whitespace(tmp_path: Path) -> None:
    address = Web3.to_checksum_address("0x" + "5e" * 20)
    path = tmp_path / ".address"
    path.write_text(f"  {address}\n", encoding="utf-8")

    assert read_address(path) == address


def test_read_address_rejects_garbage(tmp_path: Path) -> None:
    path = tmp_path / ".address"
    path.write_text("not-an-address", encoding="utf-8")

    with pytest.raises(ArtifactError, match="valid address"):
        read_address(path)
