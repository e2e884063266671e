import json
from collections import namedtuple

import pytest

from rollout.collaborators import Broadcaster, Confirmation, Verifier
from rollout.exceptions import BroadcastError, ConfirmationError
from rollout.models import ContractSpec

DEPLOYER_ADDRESS = "0x" + "de" * 20

Account = namedtuple("Account", ["address"])


def address_for(index):
    return "0x" + f"{index + 1:040x}"


def tx_hash_for(index):
    return "0x" + f"{index + 1:064x}"


def _as_error(error, error_type):
    if isinstance(error, Exception):
        return error
    return error_type(error)


class FakeBroadcaster(Broadcaster):
    """Records every call; failures are configured per contract name."""

    def __init__(
        self,
        deployer=Account(DEPLOYER_ADDRESS),
        broadcast_errors=None,
        null_handles=(),
        confirmation_errors=None,
        unfinalized=(),
        missing_addresses=(),
        invalid_addresses=(),
    ):
        self.deployer = deployer
        self.broadcast_errors = broadcast_errors or dict()
        self.null_handles = set(null_handles)
        self.confirmation_errors = confirmation_errors or dict()
        self.unfinalized = set(unfinalized)
        self.missing_addresses = set(missing_addresses)
        self.invalid_addresses = set(invalid_addresses)
        self.events = list()
        self.deployed = list()
        self.preflighted = None
        self._handles = dict()

    def get_deployer(self):
        return self.deployer

    def preflight(self, specs):
        self.preflighted = [spec.name for spec in specs]

    def deploy(self, contract_name, constructor_arguments):
        self.events.append(("deploy", contract_name))
        self.deployed.append((contract_name, tuple(constructor_arguments)))
        if contract_name in self.broadcast_errors:
            raise _as_error(self.broadcast_errors[contract_name], BroadcastError)
        if contract_name in self.null_handles:
            return None
        handle = tx_hash_for(len(self._handles))
        self._handles[handle] = (contract_name, len(self._handles))
        return handle

    def wait(self, handle):
        contract_name, index = self._handles[handle]
        self.events.append(("wait", contract_name))
        if contract_name in self.confirmation_errors:
            raise _as_error(self.confirmation_errors[contract_name], ConfirmationError)
        if contract_name in self.unfinalized:
            return Confirmation(finalized=False, contract_address=None, block_number=index + 1)
        if contract_name in self.missing_addresses:
            return Confirmation(finalized=True, contract_address=None, block_number=index + 1)
        if contract_name in self.invalid_addresses:
            return Confirmation(
                finalized=True, contract_address="not-an-address", block_number=index + 1
            )
        return Confirmation(
            finalized=True, contract_address=address_for(index), block_number=index + 1
        )


class FakeVerifier(Verifier):
    def __init__(self, errors=None):
        self.errors = errors or dict()
        self.calls = list()

    def verify(self, address, constructor_arguments, contract_name):
        self.calls.append((address, tuple(constructor_arguments), contract_name))
        if contract_name in self.errors:
            raise self.errors[contract_name]


class Clock:
    """Stands in for time.sleep; records requested delays without waiting."""

    def __init__(self):
        self.sleeps = list()

    def __call__(self, seconds):
        self.sleeps.append(seconds)


class Sink:
    def __init__(self):
        self.messages = list()

    def __call__(self, message):
        self.messages.append(message)


@pytest.fixture
def broadcaster():
    return FakeBroadcaster()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def sink():
    return Sink()


@pytest.fixture
def token_specs():
    return [ContractSpec(name="TokenA"), ContractSpec(name="TokenB")]


@pytest.fixture
def rollout_specs():
    return [
        ContractSpec(name="StudyAchievements", constructor_arguments=["ipfs://base/"]),
        ContractSpec(name="SimbiToken"),
    ]


def write_json(filepath, data):
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        json.dump(data, file)
    return filepath


STUDY_ACHIEVEMENTS_ABI = [
    {
        "type": "constructor",
        "inputs": [{"name": "baseURI", "type": "string", "internalType": "string"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "baseURI",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
    },
]

SIMBI_TOKEN_ABI = [
    {"type": "constructor", "inputs": [], "stateMutability": "nonpayable"},
]

BUILD_INFO = {
    "solcVersion": "0.8.24",
    "solcLongVersion": "0.8.24+commit.e11b9ed9",
    "input": {
        "language": "Solidity",
        "sources": {"contracts/StudyAchievements.sol": {"content": "contract StudyAchievements {}"}},
        "settings": {"optimizer": {"enabled": False, "runs": 200}},
    },
}


@pytest.fixture
def artifacts_dir(tmp_path):
    """A minimal Hardhat artifacts tree with build-info for StudyAchievements."""
    root = tmp_path / "artifacts"
    write_json(root / "build-info" / "abc123.json", BUILD_INFO)

    study_dir = root / "contracts" / "StudyAchievements.sol"
    write_json(
        study_dir / "StudyAchievements.json",
        {
            "contractName": "StudyAchievements",
            "sourceName": "contracts/StudyAchievements.sol",
            "abi": STUDY_ACHIEVEMENTS_ABI,
            "bytecode": "0x6001600c60003960016000f300",
        },
    )
    write_json(
        study_dir / "StudyAchievements.dbg.json",
        {"_format": "hh-sol-dbg-1", "buildInfo": "../../build-info/abc123.json"},
    )

    token_dir = root / "contracts" / "SimbiToken.sol"
    write_json(
        token_dir / "SimbiToken.json",
        {
            "contractName": "SimbiToken",
            "sourceName": "contracts/SimbiToken.sol",
            "abi": SIMBI_TOKEN_ABI,
            "bytecode": "0x6001600c60003960016000f300",
        },
    )
    return root
