import time
import typing
from typing import Callable, Optional

from rollout.collaborators import Broadcaster, Notify, Verifier, notify_safely
from rollout.constants import DEFAULT_SETTLING_DELAY
from rollout.exceptions import ConfigurationError
from rollout.models import ContractSpec, RunReport
from rollout.params import validate_specs
from rollout.sequencer import DeploymentSequencer
from rollout.verification import VerificationCoordinator

Checkpoint = Callable[[RunReport], None]


class Orchestrator:
    """
    Runs a deployment sequence followed by source verification and aggregates
    both into a RunReport.

    `checkpoint` is called with the deployment-only report before verification
    starts, so finalized deployments can be persisted even if verification is
    interrupted.
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        verifier: Optional[Verifier],
        settling_delay: float = DEFAULT_SETTLING_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        notify: Notify = print,
        checkpoint: Optional[Checkpoint] = None,
    ):
        self.broadcaster = broadcaster
        self.sequencer = DeploymentSequencer(broadcaster=broadcaster, notify=notify)
        self.coordinator = VerificationCoordinator(
            verifier=verifier, settling_delay=settling_delay, sleep=sleep, notify=notify
        )
        self.notify = notify
        self.checkpoint = checkpoint

    def run(self, specs: typing.Sequence[ContractSpec]) -> RunReport:
        specs = list(specs)
        validate_specs(specs)

        deployer = self.broadcaster.get_deployer()
        if deployer is None:
            raise ConfigurationError("No deployer account available.")
        notify_safely(self.notify, f"Deploying contracts with account: {deployer.address}")
        self.broadcaster.preflight(specs)

        deployments = self.sequencer.deploy(specs)
        report = RunReport(
            deployer=deployer.address,
            deployments=tuple(deployments),
            not_attempted=tuple(specs[len(deployments) :]),
        )
        if self.checkpoint is not None:
            self.checkpoint(report)

        verifications = self.coordinator.verify(deployments)
        return report.with_verifications(verifications)
