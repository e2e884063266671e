import time
import typing
from typing import Callable, List, Optional

from rollout.collaborators import Notify, Verifier, notify_safely
from rollout.constants import DEFAULT_SETTLING_DELAY
from rollout.exceptions import AlreadyVerified, ConfigurationError
from rollout.models import (
    DeploymentResult,
    VerificationOutcome,
    VerificationStatus,
)

VERIFICATION_DISABLED = "verification disabled"


class VerificationCoordinator:
    """
    Verifies finalized deployments with a block explorer.

    Waits `settling_delay` seconds once, then verifies each finalized deployment
    in order. Every attempt is isolated: an error for one contract is recorded as
    its outcome and never prevents the remaining attempts.
    """

    def __init__(
        self,
        verifier: Optional[Verifier],
        settling_delay: float = DEFAULT_SETTLING_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        notify: Notify = print,
    ):
        if settling_delay < 0:
            raise ConfigurationError(f"settling delay must not be negative, got {settling_delay}.")
        self.verifier = verifier
        self.settling_delay = settling_delay
        self.sleep = sleep
        self.notify = notify

    def verify(self, results: typing.Sequence[DeploymentResult]) -> List[VerificationOutcome]:
        to_verify = [r for r in results if r.is_finalized]
        if to_verify and self.verifier is not None and self.settling_delay:
            notify_safely(
                self.notify,
                f"\nWaiting {self.settling_delay:g} seconds before verification...",
            )
            self.sleep(self.settling_delay)

        outcomes = list()
        for result in results:
            if not result.is_finalized:
                outcome = VerificationOutcome(
                    name=result.name,
                    status=VerificationStatus.SKIPPED,
                    detail=f"deployment {result.status.value.lower()}: {result.error}",
                )
            elif self.verifier is None:
                outcome = VerificationOutcome(
                    name=result.name,
                    address=result.address,
                    status=VerificationStatus.SKIPPED,
                    detail=VERIFICATION_DISABLED,
                )
            else:
                outcome = self._verify_one(result)
            outcomes.append(outcome)

        return outcomes

    def _verify_one(self, result: DeploymentResult) -> VerificationOutcome:
        notify_safely(self.notify, f"(i) Verifying {result.name} at {result.address}...")
        try:
            self.verifier.verify(result.address, result.constructor_arguments, result.name)
        except AlreadyVerified as e:
            notify_safely(self.notify, f"(i) {result.name} is already verified.")
            return VerificationOutcome(
                name=result.name,
                address=result.address,
                status=VerificationStatus.VERIFIED,
                detail=str(e) or "already verified",
            )
        except Exception as e:  # noqa: BLE001
            detail = str(e) or type(e).__name__
            notify_safely(self.notify, f"(!) Verification failed for {result.name}: {detail}")
            return VerificationOutcome(
                name=result.name,
                address=result.address,
                status=VerificationStatus.VERIFICATION_FAILED,
                detail=detail,
            )

        notify_safely(self.notify, f"(i) {result.name} verified.")
        return VerificationOutcome(
            name=result.name, address=result.address, status=VerificationStatus.VERIFIED
        )


def verify_deployments(
    results: typing.Sequence[DeploymentResult],
    settling_delay: float,
    verifier: Optional[Verifier],
    sleep: Callable[[float], None] = time.sleep,
    notify: Notify = print,
) -> List[VerificationOutcome]:
    """Verifies every finalized deployment in `results`; see VerificationCoordinator."""
    coordinator = VerificationCoordinator(
        verifier=verifier, settling_delay=settling_delay, sleep=sleep, notify=notify
    )
    return coordinator.verify(results)
