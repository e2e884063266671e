import typing
from abc import ABC, abstractmethod
from typing import Any, Callable, NamedTuple, Optional, Sequence

from eth_typing import ChecksumAddress

from rollout.models import ContractSpec

Notify = Callable[[str], None]
TransactionHandle = Any


class Confirmation(NamedTuple):
    """What the chain reported once a deployment transaction was mined."""

    finalized: bool
    contract_address: Optional[str] = None
    block_number: Optional[int] = None


class DeployerAccount(typing.Protocol):
    address: ChecksumAddress


class Broadcaster(ABC):
    """Signs, broadcasts and confirms contract creation transactions."""

    @abstractmethod
    def get_deployer(self) -> Optional[DeployerAccount]:
        raise NotImplementedError

    @abstractmethod
    def deploy(self, contract_name: str, constructor_arguments: Sequence[Any]) -> TransactionHandle:
        """
        Broadcasts the creation transaction and returns its handle (the transaction hash).
        Raises BroadcastError if the transaction could not be submitted.
        """
        raise NotImplementedError

    @abstractmethod
    def wait(self, handle: TransactionHandle) -> Confirmation:
        """Blocks until the transaction is mined. Raises ConfirmationError on timeout."""
        raise NotImplementedError

    def preflight(self, specs: Sequence[ContractSpec]) -> None:
        """Checks the specs can be deployed at all. Raises ConfigurationError."""
        return


class Verifier(ABC):
    """Registers deployed contract sources with a block explorer."""

    @abstractmethod
    def verify(
        self, address: ChecksumAddress, constructor_arguments: Sequence[Any], contract_name: str
    ) -> None:
        """Raises VerificationError (or AlreadyVerified) when verification does not pass."""
        raise NotImplementedError


def notify_safely(notify: Notify, message: str) -> None:
    """Reports progress; a broken sink never interrupts a run."""
    try:
        notify(message)
    except Exception:  # noqa: BLE001
        pass
