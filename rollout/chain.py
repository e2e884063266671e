import typing
from collections import OrderedDict
from typing import Any, List, Optional

import requests
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_hex
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from rollout.artifacts import ArtifactStore, ContractArtifact
from rollout.collaborators import Broadcaster, Confirmation
from rollout.config import RolloutConfig
from rollout.constants import DEFAULT_CONFIRMATION_TIMEOUT
from rollout.exceptions import BroadcastError, ConfigurationError, ConfirmationError
from rollout.models import ContractSpec
from rollout.params import contains_variable

NETWORK_ERRORS = (Web3Exception, ValueError, TypeError, requests.RequestException)


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    parameters: "OrderedDict[str, Any]",
    positional: bool,
    w3: Web3,
) -> None:
    """Validates constructor parameters against the constructor ABI."""
    if len(parameters) != len(abi_inputs):
        raise ConfigurationError(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(parameters)}."
        )

    codex = enumerate(zip(abi_inputs, parameters.items()), start=0)
    for position, (abi_input, (name, value)) in codex:
        # validate name
        if not positional and abi_input.get("name") != name:
            raise ConfigurationError(
                f"{contract_name} constructor parameter '{name}' at position {position} does not "
                f"match the expected ABI name '{abi_input.get('name')}'."
            )

        # variables only resolve at broadcast time
        if contains_variable(value):
            continue

        # validate value type
        if not w3.is_encodable(abi_input["type"], value):
            raise ConfigurationError(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input['type']}'"
            )


class Web3Broadcaster(Broadcaster):
    """
    Deploys Hardhat artifacts over JSON-RPC, signing locally with a private key.
    """

    def __init__(
        self,
        w3: Web3,
        account: LocalAccount,
        artifacts: ArtifactStore,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
    ):
        self.w3 = w3
        self.account = account
        self.artifacts = artifacts
        self.confirmation_timeout = confirmation_timeout

    @classmethod
    def from_config(cls, config: RolloutConfig, artifacts: ArtifactStore) -> "Web3Broadcaster":
        if not config.signing_key:
            raise ConfigurationError("A signing key is required to deploy contracts.")
        try:
            account = Account.from_key(config.signing_key)
        except Exception as e:
            raise ConfigurationError(f"Invalid signing key: {type(e).__name__}") from e

        w3 = connect(config.network_url)
        return cls(
            w3=w3,
            account=account,
            artifacts=artifacts,
            confirmation_timeout=config.confirmation_timeout,
        )

    @property
    def chain_id(self) -> int:
        return self.w3.eth.chain_id

    def get_deployer(self) -> Optional[LocalAccount]:
        return self.account

    def preflight(self, specs: typing.Sequence[ContractSpec]) -> None:
        print("Checking artifacts and constructor parameters...")
        for spec in specs:
            artifact = self.artifacts.get(spec.name)
            positional = not spec.parameter_names
            names = spec.parameter_names or [str(i) for i in range(len(spec.constructor_arguments))]
            parameters = OrderedDict(zip(names, spec.constructor_arguments))
            _validate_constructor_abi_inputs(
                contract_name=spec.name,
                abi_inputs=artifact.constructor_inputs,
                parameters=parameters,
                positional=positional,
                w3=self.w3,
            )

    def _build_transaction(self, artifact: ContractArtifact, arguments: typing.Sequence[Any]):
        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        nonce = self.w3.eth.get_transaction_count(self.account.address, "pending")
        return factory.constructor(*arguments).build_transaction(
            {"from": self.account.address, "nonce": nonce}
        )

    def deploy(self, contract_name: str, constructor_arguments: typing.Sequence[Any]) -> HexBytes:
        try:
            artifact = self.artifacts.get(contract_name)
        except ConfigurationError as e:
            raise BroadcastError(str(e)) from e

        try:
            transaction = self._build_transaction(artifact, constructor_arguments)
            signed = self.account.sign_transaction(transaction)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except NETWORK_ERRORS as e:
            raise BroadcastError(f"Failed to broadcast {contract_name} deployment: {e}") from e

        print(f"(i) {contract_name} deployment transaction: {to_hex(tx_hash)}")
        return tx_hash

    def wait(self, handle: HexBytes) -> Confirmation:
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                handle, timeout=self.confirmation_timeout
            )
        except TimeExhausted as e:
            raise ConfirmationError(
                f"Transaction {to_hex(handle)} not mined within "
                f"{self.confirmation_timeout:g} seconds."
            ) from e
        except NETWORK_ERRORS as e:
            raise ConfirmationError(f"Failed to confirm {to_hex(handle)}: {e}") from e

        return Confirmation(
            finalized=receipt["status"] == 1,
            contract_address=receipt.get("contractAddress"),
            block_number=receipt.get("blockNumber"),
        )


def connect(network_url: str) -> Web3:
    """Connects to a JSON-RPC endpoint. Raises ConfigurationError when unreachable."""
    w3 = Web3(Web3.HTTPProvider(network_url))
    if not w3.is_connected():
        raise ConfigurationError(f"Cannot connect to network at {network_url}.")
    return w3
