"""
Access to compiled Hardhat artifacts.

An artifact lives at ``artifacts/<sourceName>/<ContractName>.json`` and holds the
ABI and creation bytecode; its sibling ``<ContractName>.dbg.json`` points at the
build-info file carrying the compiler version and standard JSON input needed for
source verification.
"""
import json
import typing
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

from eth_utils.abi import collapse_if_tuple
from hexbytes import HexBytes
from web3 import Web3

from rollout.exceptions import ConfigurationError, VerificationError

_codec_w3 = Web3()


class ContractArtifact(NamedTuple):
    name: str
    source_name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    build_info_filepath: Optional[Path] = None

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.source_name}:{self.name}"

    @property
    def constructor_inputs(self) -> List[Dict[str, Any]]:
        for entry in self.abi:
            if entry.get("type") == "constructor":
                return list(entry.get("inputs", []))
        return []

    @property
    def constructor_types(self) -> List[str]:
        return [collapse_if_tuple(abi_input) for abi_input in self.constructor_inputs]

    def encode_constructor_arguments(self, arguments: typing.Sequence[Any]) -> str:
        """ABI-encodes constructor arguments as a hex string without the 0x prefix."""
        types = self.constructor_types
        if len(types) != len(arguments):
            raise VerificationError(
                f"Constructor arguments length mismatch - "
                f"{self.name} ABI requires {len(types)}, got {len(arguments)}."
            )
        values = [_normalize_argument(t, v) for t, v in zip(types, arguments)]
        for position, (abi_type, value) in enumerate(zip(types, values)):
            if not _codec_w3.is_encodable(abi_type, value):
                raise VerificationError(
                    f"Cannot encode constructor arguments for {self.name}: value {value!r} "
                    f"at position {position} is not a valid '{abi_type}'"
                )
        return _codec_w3.codec.encode(types, values).hex()

    def load_build_info(self) -> Dict[str, Any]:
        """Returns the Hardhat build-info for this artifact (compiler version and input)."""
        if self.build_info_filepath is None or not self.build_info_filepath.exists():
            raise VerificationError(f"No build info available for {self.name}; recompile first.")
        return _load_json(self.build_info_filepath)


def _normalize_argument(abi_type: str, value: Any) -> Any:
    # registries store bytes as 0x-prefixed hex strings
    if abi_type.startswith("bytes") and not abi_type.endswith("]") and isinstance(value, str):
        return bytes(HexBytes(value))
    if abi_type.endswith("]") and isinstance(value, (list, tuple)):
        element_type = abi_type[: abi_type.rindex("[")]
        return [_normalize_argument(element_type, v) for v in value]
    return value


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


class ArtifactStore:
    """Looks up compiled contracts by name in a Hardhat artifacts directory."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._cache: Dict[str, ContractArtifact] = dict()

    def _find(self, contract_name: str) -> Path:
        candidates = [
            path
            for path in self.root.rglob(f"{contract_name}.json")
            if "build-info" not in path.parts
        ]
        if not candidates:
            raise ConfigurationError(
                f"No compiled artifact found for contract '{contract_name}' in {self.root}."
            )
        if len(candidates) != 1:
            raise ConfigurationError(
                f"Contract {contract_name} is ambiguous - expected exactly one artifact, "
                f"got {len(candidates)}: {', '.join(str(c) for c in sorted(candidates))}"
            )
        return candidates[0]

    def get(self, contract_name: str) -> ContractArtifact:
        try:
            return self._cache[contract_name]
        except KeyError:
            pass

        filepath = self._find(contract_name)
        data = _load_json(filepath)
        bytecode = data.get("bytecode")
        if not bytecode or bytecode == "0x":
            raise ConfigurationError(
                f"Artifact for {contract_name} has no creation bytecode (abstract or interface?)."
            )

        artifact = ContractArtifact(
            name=data.get("contractName", contract_name),
            source_name=data.get("sourceName", ""),
            abi=data.get("abi", []),
            bytecode=bytecode,
            build_info_filepath=self._build_info_filepath(filepath),
        )
        self._cache[contract_name] = artifact
        return artifact

    @staticmethod
    def _build_info_filepath(artifact_filepath: Path) -> Optional[Path]:
        debug_filepath = artifact_filepath.with_suffix(".dbg.json")
        if not debug_filepath.exists():
            return None
        build_info = _load_json(debug_filepath).get("buildInfo")
        if not build_info:
            return None
        return (debug_filepath.parent / build_info).resolve()
