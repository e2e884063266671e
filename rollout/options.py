from pathlib import Path

import click

from rollout.constants import HARDHAT_ARTIFACTS_DIR
from rollout.types import Duration

params_filepath_option = click.option(
    "--params-filepath",
    "-p",
    help="Deployment parameters YAML file.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)

artifacts_dir_option = click.option(
    "--artifacts-dir",
    help="Hardhat artifacts directory.",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=HARDHAT_ARTIFACTS_DIR,
    show_default=True,
)

settling_delay_option = click.option(
    "--settling-delay",
    "-s",
    help="Time to wait after deployment before verifying (defaults to $SETTLING_DELAY or 30s).",
    type=Duration(),
    default=None,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Verify deployed contract sources with the block explorer.",
    default=True,
    show_default=True,
)

autosign_option = click.option(
    "--autosign",
    help="Deploy without asking for confirmation.",
    is_flag=True,
    default=False,
)

report_filepath_option = click.option(
    "--report-filepath",
    "-o",
    help="Write the run report as JSON to this file.",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
)
