from functools import partial
from pathlib import Path

import click
from dotenv import load_dotenv

from rollout.artifacts import ArtifactStore
from rollout.chain import Web3Broadcaster, connect
from rollout.config import RolloutConfig
from rollout.confirm import confirm_deployment
from rollout.exceptions import ConfigurationError
from rollout.explorer import EtherscanVerifier
from rollout.options import (
    artifacts_dir_option,
    autosign_option,
    params_filepath_option,
    report_filepath_option,
    settling_delay_option,
    verify_option,
)
from rollout.orchestrator import Orchestrator
from rollout.params import load_plan, validate_network
from rollout.registry import registry_from_report, results_from_registry
from rollout.report import format_summary, write_report
from rollout.verification import verify_deployments


def _print_deployment_info(plan, broadcaster, config, params_filepath):
    click.echo(
        "\n".join(
            [
                f"Account: {broadcaster.get_deployer().address}",
                f"Config: {params_filepath}",
                f"Registry: {plan.registry_filepath}",
                f"Verify: {config.verify}",
                f"Settling delay: {config.settling_delay:g}s",
                f"Chain ID: {broadcaster.chain_id}",
                f"Contracts: {', '.join(spec.name for spec in plan.specs)}",
            ]
        )
    )


@click.group()
def cli():
    """Deploy contracts in order and verify their sources."""
    load_dotenv(override=True)


@cli.command()
@params_filepath_option
@artifacts_dir_option
@settling_delay_option
@verify_option
@autosign_option
@report_filepath_option
def deploy(params_filepath, artifacts_dir, settling_delay, verify, autosign, report_filepath):
    """Deploy the contracts of a parameters file, then verify them."""
    try:
        config = RolloutConfig.from_env(verify=verify, settling_delay=settling_delay)
        plan = load_plan(params_filepath)
        artifacts = ArtifactStore(artifacts_dir)
        broadcaster = Web3Broadcaster.from_config(config, artifacts)
        chain_id = broadcaster.chain_id
        validate_network(plan, chain_id)
    except ConfigurationError as e:
        raise click.UsageError(str(e))

    verifier = None
    if config.verify:
        verifier = EtherscanVerifier(
            api_key=config.explorer_api_key, chain_id=chain_id, artifacts=artifacts
        )

    _print_deployment_info(plan, broadcaster, config, params_filepath)
    if not autosign:
        confirm_deployment(plan.specs)

    orchestrator = Orchestrator(
        broadcaster=broadcaster,
        verifier=verifier,
        settling_delay=config.settling_delay,
        checkpoint=partial(
            registry_from_report, chain_id=chain_id, output_filepath=plan.registry_filepath
        ),
    )
    try:
        report = orchestrator.run(plan.specs)
    except ConfigurationError as e:
        raise click.UsageError(str(e))

    click.echo(format_summary(report))
    if report_filepath:
        write_report(report, report_filepath)
        click.echo(f"(i) Report written to {report_filepath}")
    if not report.succeeded:
        raise SystemExit(report.exit_code)


@cli.command()
@click.option(
    "--registry-filepath",
    "-f",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    help="Registry file written by a previous deployment.",
    required=True,
)
@click.option(
    "--contract-name",
    "-c",
    "contract_names",
    help="Contract to verify (defaults to every contract in the registry).",
    type=click.STRING,
    multiple=True,
)
@artifacts_dir_option
@settling_delay_option
def verify(registry_filepath, contract_names, artifacts_dir, settling_delay):
    """Verify contracts recorded in a registry."""
    try:
        config = RolloutConfig.from_env(
            require_signer=False, settling_delay=0 if settling_delay is None else settling_delay
        )
        chain_id = connect(config.network_url).eth.chain_id
        results = results_from_registry(registry_filepath, chain_id, contract_names)
    except (ConfigurationError, ValueError) as e:
        raise click.UsageError(str(e))

    verifier = EtherscanVerifier(
        api_key=config.explorer_api_key, chain_id=chain_id, artifacts=ArtifactStore(artifacts_dir)
    )
    outcomes = verify_deployments(
        results, settling_delay=config.settling_delay, verifier=verifier
    )
    for outcome in outcomes:
        line = f"{outcome.name} ({outcome.address}): {outcome.status.value}"
        if outcome.detail:
            line += f" - {outcome.detail}"
        click.echo(line)


if __name__ == "__main__":
    cli()
