import json
from collections import defaultdict
from pathlib import Path
from typing import Any, Iterable, List, NamedTuple, Optional

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address, to_hex

from rollout.models import ContractName, ContractSpec, DeploymentResult, RunReport

ChainId = int


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single deployed contract in a registry file."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    tx_hash: str
    block_number: Optional[int]
    deployer: Optional[str]
    constructor_arguments: List[Any]


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def to_json_value(value: Any) -> Any:
    """Converts constructor arguments into JSON-compatible values."""
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return to_hex(value)
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def _get_entry(result: DeploymentResult, chain_id: ChainId, deployer: Optional[str]) -> RegistryEntry:
    return RegistryEntry(
        chain_id=chain_id,
        name=result.name,
        address=to_checksum_address(result.address),
        tx_hash=result.transaction_hash,
        block_number=result.block_number,
        deployer=deployer,
        constructor_arguments=to_json_value(list(result.constructor_arguments)),
    )


def entries_from_report(report: RunReport, chain_id: ChainId) -> List[RegistryEntry]:
    """Returns registry entries for the finalized deployments of a run."""
    return [
        _get_entry(result=result, chain_id=chain_id, deployer=report.deployer)
        for result in report.finalized_deployments
    ]


def read_registry(filepath: Path) -> List[RegistryEntry]:
    data = _load_json(filepath)
    registry_entries = list()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            registry_entry = RegistryEntry(
                chain_id=int(chain_id),
                name=contract_name,
                address=artifacts["address"],
                tx_hash=artifacts["tx_hash"],
                block_number=artifacts.get("block_number"),
                deployer=artifacts.get("deployer"),
                constructor_arguments=artifacts.get("constructor_arguments", []),
            )
            registry_entries.append(registry_entry)
    return registry_entries


def write_registry(entries: List[RegistryEntry], filepath: Path, silent: bool = False) -> Path:
    """Writes a contract registry to a file, merging with an existing one where possible."""

    if not entries:
        print("No entries provided.")
        return filepath

    # Sort registry entries to enforce common order
    entries = sorted(entries, key=lambda entry: (str(entry.chain_id), entry.name))

    data = defaultdict(dict)
    for entry in entries:
        data[str(entry.chain_id)][entry.name] = {
            "address": entry.address,
            "tx_hash": entry.tx_hash,
            "block_number": None if entry.block_number is None else int(entry.block_number),
            "deployer": entry.deployer,
            "constructor_arguments": entry.constructor_arguments,
        }

    # Create the parent directory if it does not exist
    filepath.parent.mkdir(parents=True, exist_ok=True)

    # If the file already exists, attempt to merge the data, if not create a new file
    if filepath.exists():
        if not silent:
            print(f"Updating existing registry at {filepath}.")
        existing_data = _load_json(filepath)

        if any(chain_id in existing_data for chain_id in data):
            filepath = filepath.with_suffix(".unmerged.json")
            if not silent:
                print(
                    "Cannot merge registries with overlapping chain IDs.\n"
                    f"Writing to {filepath} to avoid overwriting existing data."
                )
        else:
            existing_data.update(data)
            data = existing_data
    elif not silent:
        print(f"Creating new registry at {filepath}.")

    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)

    return filepath


def registry_from_report(report: RunReport, chain_id: ChainId, output_filepath: Path) -> Path:
    """Records the finalized deployments of a run in a registry file."""
    entries = entries_from_report(report=report, chain_id=chain_id)
    output_filepath = write_registry(entries=entries, filepath=output_filepath)
    if entries:
        print(f"(i) Registry written to {output_filepath}!")
    return output_filepath


def _deployment_order(entries: Iterable[RegistryEntry]) -> List[ContractName]:
    # registries are stored sorted by name; entries without a block number go last
    ordered = sorted(
        entries,
        key=lambda e: (e.block_number is None, e.block_number or 0, e.tx_hash, e.name),
    )
    return [e.name for e in ordered]


def results_from_registry(
    filepath: Path, chain_id: ChainId, contract_names: Optional[Iterable[ContractName]] = None
) -> List[DeploymentResult]:
    """
    Rebuilds finalized deployment results from a registry so that they can be
    verified again. Results follow deployment order (by block number) unless
    `contract_names` is given, in which case they follow `contract_names`.
    """
    entries = {e.name: e for e in read_registry(filepath=filepath) if e.chain_id == chain_id}
    names = list(contract_names) if contract_names else _deployment_order(entries.values())

    results = list()
    for name in names:
        try:
            entry = entries[name]
        except KeyError:
            raise ValueError(
                f"Contract '{name}' not found in registry, '{filepath}', for chain {chain_id}"
            )
        result = DeploymentResult.finalized(
            spec=ContractSpec(name=entry.name, constructor_arguments=entry.constructor_arguments),
            address=to_checksum_address(entry.address),
            transaction_hash=entry.tx_hash,
            constructor_arguments=entry.constructor_arguments,
            block_number=entry.block_number,
        )
        results.append(result)
    return results
