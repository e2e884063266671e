import typing
from typing import Any, List

from eth_utils import to_checksum_address, to_hex

from rollout.collaborators import Broadcaster, Notify, notify_safely
from rollout.exceptions import BroadcastError, ConfirmationError
from rollout.models import ContractSpec, DeploymentResult
from rollout.params import ResolutionContext, resolve_arguments


def _format_transaction_hash(handle: Any) -> str:
    if isinstance(handle, (bytes, bytearray)):
        return to_hex(handle)
    return str(handle)


class DeploymentSequencer:
    """
    Deploys contract specs strictly in order, one at a time.

    Each deployment is awaited until mined before the next one is broadcast, so
    later constructor arguments may reference earlier addresses. The first
    failure aborts the sequence: the remaining specs are never broadcast.
    """

    def __init__(self, broadcaster: Broadcaster, notify: Notify = print):
        self.broadcaster = broadcaster
        self.notify = notify

    def deploy(self, specs: typing.Sequence[ContractSpec]) -> List[DeploymentResult]:
        deployer = self.broadcaster.get_deployer()
        context = ResolutionContext(deployer_address=deployer.address if deployer else None)

        results = list()
        for position, spec in enumerate(specs, start=1):
            notify_safely(self.notify, f"\n{position}. Deploying {spec.name}...")
            result = self._deploy_one(spec, context)
            results.append(result)

            if not result.is_finalized:
                notify_safely(self.notify, f"(!) {spec.name} deployment failed: {result.error}")
                remaining = len(specs) - position
                if remaining:
                    notify_safely(
                        self.notify,
                        f"(!) Aborting deployment; {remaining} remaining contract(s) not deployed.",
                    )
                break

            context.addresses[spec.name] = result.address
            notify_safely(self.notify, f"(i) {spec.name} deployed to: {result.address}")

        return results

    def _deploy_one(self, spec: ContractSpec, context: ResolutionContext) -> DeploymentResult:
        arguments = ()
        try:
            arguments = resolve_arguments(spec.constructor_arguments, context)
            handle = self.broadcaster.deploy(spec.name, arguments)
        except BroadcastError as e:
            return DeploymentResult.failed(spec, error=e, constructor_arguments=arguments)
        except Exception as e:  # noqa: BLE001
            error = BroadcastError(
                f"Failed to broadcast {spec.name} deployment: {str(e) or type(e).__name__}"
            )
            return DeploymentResult.failed(spec, error=error, constructor_arguments=arguments)

        if handle is None:
            error = ConfirmationError(f"{spec.name} deployment transaction is null.")
            return DeploymentResult.failed(spec, error=error, constructor_arguments=arguments)

        transaction_hash = _format_transaction_hash(handle)
        try:
            confirmation = self.broadcaster.wait(handle)
        except ConfirmationError as e:
            return DeploymentResult.failed(
                spec, error=e, transaction_hash=transaction_hash, constructor_arguments=arguments
            )
        except Exception as e:  # noqa: BLE001
            error = ConfirmationError(
                f"Failed to confirm {spec.name} deployment: {str(e) or type(e).__name__}"
            )
            return DeploymentResult.failed(
                spec, error=error, transaction_hash=transaction_hash, constructor_arguments=arguments
            )

        address = None
        error = None
        if confirmation is None or not confirmation.finalized:
            error = ConfirmationError(
                f"{spec.name} deployment transaction {transaction_hash} did not finalize."
            )
        elif not confirmation.contract_address:
            error = ConfirmationError(
                f"{spec.name} deployment transaction {transaction_hash} was mined "
                "without a contract address."
            )
        else:
            try:
                address = to_checksum_address(confirmation.contract_address)
            except (ValueError, TypeError):
                error = ConfirmationError(
                    f"{spec.name} deployment transaction {transaction_hash} reported an invalid "
                    f"contract address: {confirmation.contract_address!r}"
                )
        if error is not None:
            return DeploymentResult.failed(
                spec, error=error, transaction_hash=transaction_hash, constructor_arguments=arguments
            )

        return DeploymentResult.finalized(
            spec=spec,
            address=address,
            transaction_hash=transaction_hash,
            constructor_arguments=arguments,
            block_number=confirmation.block_number,
        )


def deploy_contracts(
    specs: typing.Sequence[ContractSpec], broadcaster: Broadcaster, notify: Notify = print
) -> List[DeploymentResult]:
    """Deploys `specs` in order through `broadcaster`, stopping at the first failure."""
    return DeploymentSequencer(broadcaster=broadcaster, notify=notify).deploy(specs)
