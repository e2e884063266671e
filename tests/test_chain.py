from unittest.mock import MagicMock

import pytest
from eth_account import Account
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from rollout.artifacts import ArtifactStore
from rollout.chain import Web3Broadcaster
from rollout.config import RolloutConfig
from rollout.exceptions import BroadcastError, ConfigurationError, ConfirmationError
from rollout.models import ContractSpec
from rollout.params import ContractReference, VariableContext
from tests.conftest import address_for

PRIVATE_KEY = "0x" + "4c" * 32
TX_HASH = HexBytes("0x" + "ab" * 32)


@pytest.fixture
def account():
    return Account.from_key(PRIVATE_KEY)


@pytest.fixture
def w3():
    w3 = MagicMock()
    w3.eth.chain_id = 11155111
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = TX_HASH
    factory = w3.eth.contract.return_value
    factory.constructor.return_value.build_transaction.return_value = {
        "data": "0x6001600c60003960016000f300",
        "value": 0,
        "gas": 100000,
        "gasPrice": 1000000000,
        "nonce": 7,
        "chainId": 11155111,
    }
    w3.is_encodable.side_effect = Web3().is_encodable
    return w3


@pytest.fixture
def broadcaster(w3, account, artifacts_dir):
    return Web3Broadcaster(
        w3=w3, account=account, artifacts=ArtifactStore(artifacts_dir), confirmation_timeout=60
    )


def test_deployer_is_signing_account(broadcaster, account):
    assert broadcaster.get_deployer().address == account.address
    assert broadcaster.chain_id == 11155111


def test_deploy_signs_and_broadcasts(broadcaster, w3, account):
    handle = broadcaster.deploy("StudyAchievements", ["ipfs://base/"])

    assert handle == TX_HASH
    factory = w3.eth.contract.return_value
    factory.constructor.assert_called_once_with("ipfs://base/")
    factory.constructor.return_value.build_transaction.assert_called_once_with(
        {"from": account.address, "nonce": 7}
    )
    raw_transaction = w3.eth.send_raw_transaction.call_args.args[0]
    assert len(raw_transaction) > 0


def test_rejected_broadcast(broadcaster, w3):
    w3.eth.send_raw_transaction.side_effect = Web3Exception("insufficient funds for gas * price + value")
    with pytest.raises(BroadcastError, match="insufficient funds"):
        broadcaster.deploy("StudyAchievements", ["ipfs://base/"])


def test_unknown_artifact_is_a_broadcast_error(broadcaster):
    with pytest.raises(BroadcastError, match="No compiled artifact"):
        broadcaster.deploy("Missing", [])


def test_wait_returns_confirmation(broadcaster, w3):
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 1,
        "contractAddress": address_for(0),
        "blockNumber": 42,
    }
    confirmation = broadcaster.wait(TX_HASH)

    assert confirmation.finalized
    assert confirmation.contract_address == address_for(0)
    assert confirmation.block_number == 42
    w3.eth.wait_for_transaction_receipt.assert_called_once_with(TX_HASH, timeout=60)


def test_wait_reports_reverted_creation(broadcaster, w3):
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 0,
        "contractAddress": None,
        "blockNumber": 42,
    }
    assert not broadcaster.wait(TX_HASH).finalized


def test_wait_timeout(broadcaster, w3):
    w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("timed out")
    with pytest.raises(ConfirmationError, match="not mined within 60 seconds"):
        broadcaster.wait(TX_HASH)


def test_preflight_accepts_valid_specs(broadcaster):
    broadcaster.preflight(
        [
            ContractSpec(
                name="StudyAchievements",
                constructor_arguments=[""],
                parameter_names=["baseURI"],
            ),
            ContractSpec(name="SimbiToken"),
        ]
    )


def test_preflight_unknown_contract(broadcaster):
    with pytest.raises(ConfigurationError, match="No compiled artifact"):
        broadcaster.preflight([ContractSpec(name="Missing")])


def test_preflight_argument_count(broadcaster):
    with pytest.raises(ConfigurationError, match="length mismatch"):
        broadcaster.preflight([ContractSpec(name="SimbiToken", constructor_arguments=[1])])


def test_preflight_parameter_name(broadcaster):
    spec = ContractSpec(
        name="StudyAchievements", constructor_arguments=[""], parameter_names=["uri"]
    )
    with pytest.raises(ConfigurationError, match="expected ABI name 'baseURI'"):
        broadcaster.preflight([spec])


def test_preflight_argument_type(broadcaster):
    spec = ContractSpec(name="StudyAchievements", constructor_arguments=[42])
    with pytest.raises(ConfigurationError, match="does not match expected ABI type 'string'"):
        broadcaster.preflight([spec])


def test_preflight_skips_unresolved_variables(broadcaster):
    reference = ContractReference(
        "SimbiToken", VariableContext(contract_names=["SimbiToken"], contract_name="StudyAchievements")
    )
    broadcaster.preflight([ContractSpec(name="StudyAchievements", constructor_arguments=[reference])])


def test_from_config_rejects_invalid_key(artifacts_dir):
    config = RolloutConfig(network_url="http://localhost:8545", signing_key="not-a-key")
    with pytest.raises(ConfigurationError, match="Invalid signing key"):
        Web3Broadcaster.from_config(config, ArtifactStore(artifacts_dir))
