import json
from pathlib import Path
from typing import Any, Dict, List

from rollout.models import DeploymentResult, RunReport, VerificationOutcome
from rollout.registry import STANDARD_REGISTRY_JSON_FORMAT, to_json_value


def _deployment_to_dict(result: DeploymentResult) -> Dict[str, Any]:
    return {
        "spec": {
            "name": result.spec.name,
            "constructorArguments": to_json_value(list(result.constructor_arguments)),
        },
        "address": result.address,
        "transactionHash": result.transaction_hash,
        "status": result.status.value,
        "blockNumber": result.block_number,
        "error": result.error,
    }


def _verification_to_dict(outcome: VerificationOutcome) -> Dict[str, Any]:
    return {
        "name": outcome.name,
        "address": outcome.address,
        "status": outcome.status.value,
        "detail": outcome.detail,
    }


def report_to_dict(report: RunReport) -> Dict[str, Any]:
    return {
        "succeeded": report.succeeded,
        "deployer": report.deployer,
        "deployments": [_deployment_to_dict(r) for r in report.deployments],
        "verifications": [_verification_to_dict(o) for o in report.verifications],
        "notAttempted": [spec.name for spec in report.not_attempted],
        "addresses": report.addresses(),
    }


def write_report(report: RunReport, filepath: Path) -> Path:
    """Serializes a run report to JSON."""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        json.dump(report_to_dict(report), file, **STANDARD_REGISTRY_JSON_FORMAT)
    return filepath


def format_summary(report: RunReport) -> str:
    """Human-readable summary: every contract's address (or failure) and verification status."""
    outcomes = {o.name: o for o in report.verifications}
    lines: List[str] = ["", "Deployment summary", "=================="]
    if report.deployer:
        lines.append(f"Deployer: {report.deployer}")

    for result in report.deployments:
        if result.is_finalized:
            lines.append(f"{result.name}: {result.address}")
        else:
            lines.append(f"{result.name}: FAILED ({result.error})")

        outcome = outcomes.get(result.name)
        if outcome is None:
            continue
        verification = f"\tverification: {outcome.status.value}"
        if outcome.detail:
            verification += f" ({outcome.detail})"
        lines.append(verification)

    for spec in report.not_attempted:
        lines.append(f"{spec.name}: not attempted")

    lines.append("")
    lines.append("Deployment complete!" if report.succeeded else "Deployment failed!")
    return "\n".join(lines)
