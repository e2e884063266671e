import typing
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from eth_typing import ChecksumAddress

ContractName = str


class DeploymentStatus(Enum):
    FINALIZED = "Finalized"
    FAILED = "Failed"


class VerificationStatus(Enum):
    VERIFIED = "Verified"
    VERIFICATION_FAILED = "VerificationFailed"
    SKIPPED = "Skipped"


@dataclass(frozen=True)
class ContractSpec:
    """Describes one contract to deploy: the artifact name plus its constructor arguments."""

    name: ContractName
    constructor_arguments: Tuple[Any, ...] = ()
    parameter_names: Tuple[str, ...] = ()

    def __post_init__(self):
        # accept any sequence, store immutably
        object.__setattr__(self, "constructor_arguments", tuple(self.constructor_arguments))
        object.__setattr__(self, "parameter_names", tuple(self.parameter_names))


@dataclass(frozen=True)
class DeploymentResult:
    """
    Outcome of deploying a single ContractSpec.

    The address is present if and only if the deployment finalized; construct
    instances through `finalized` or `failed`.
    """

    spec: ContractSpec
    status: DeploymentStatus
    address: Optional[ChecksumAddress] = None
    transaction_hash: Optional[str] = None
    constructor_arguments: Tuple[Any, ...] = ()
    block_number: Optional[int] = None
    error: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "constructor_arguments", tuple(self.constructor_arguments))
        has_address = bool(self.address)
        if has_address != (self.status == DeploymentStatus.FINALIZED):
            raise ValueError(
                f"{self.spec.name}: address must be set if and only if the deployment "
                f"is {DeploymentStatus.FINALIZED.value} (status={self.status.value}, "
                f"address={self.address!r})"
            )

    @classmethod
    def finalized(
        cls,
        spec: ContractSpec,
        address: ChecksumAddress,
        transaction_hash: str,
        constructor_arguments: typing.Sequence[Any],
        block_number: Optional[int] = None,
    ) -> "DeploymentResult":
        return cls(
            spec=spec,
            status=DeploymentStatus.FINALIZED,
            address=address,
            transaction_hash=transaction_hash,
            constructor_arguments=tuple(constructor_arguments),
            block_number=block_number,
        )

    @classmethod
    def failed(
        cls,
        spec: ContractSpec,
        error: Exception,
        transaction_hash: Optional[str] = None,
        constructor_arguments: typing.Sequence[Any] = (),
    ) -> "DeploymentResult":
        return cls(
            spec=spec,
            status=DeploymentStatus.FAILED,
            transaction_hash=transaction_hash,
            constructor_arguments=tuple(constructor_arguments),
            error=_describe(error),
        )

    @property
    def name(self) -> ContractName:
        return self.spec.name

    @property
    def is_finalized(self) -> bool:
        return self.status == DeploymentStatus.FINALIZED


@dataclass(frozen=True)
class VerificationOutcome:
    name: ContractName
    status: VerificationStatus
    address: Optional[ChecksumAddress] = None
    detail: Optional[str] = None

    @property
    def is_verified(self) -> bool:
        return self.status == VerificationStatus.VERIFIED


@dataclass(frozen=True)
class RunReport:
    """Aggregate of one deployment and verification run."""

    deployer: Optional[ChecksumAddress] = None
    deployments: Tuple[DeploymentResult, ...] = ()
    verifications: Tuple[VerificationOutcome, ...] = ()
    not_attempted: Tuple[ContractSpec, ...] = field(default_factory=tuple)

    @property
    def failed_deployments(self) -> List[DeploymentResult]:
        return [r for r in self.deployments if r.status == DeploymentStatus.FAILED]

    @property
    def finalized_deployments(self) -> List[DeploymentResult]:
        return [r for r in self.deployments if r.is_finalized]

    @property
    def succeeded(self) -> bool:
        """True when no deployment failed; verification failures do not count."""
        return not self.failed_deployments

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def addresses(self) -> Dict[ContractName, ChecksumAddress]:
        """Returns a contract name to address mapping of finalized deployments."""
        return {r.name: r.address for r in self.finalized_deployments}

    def with_verifications(self, verifications: typing.Iterable[VerificationOutcome]) -> "RunReport":
        return replace(self, verifications=tuple(verifications))


def _describe(error: Exception) -> str:
    message = str(error)
    return message if message else type(error).__name__
