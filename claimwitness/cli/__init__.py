"""
claimwitness/cli/__init__.py

ClaimWitness CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    claimwitness = "claimwitness.cli:cli"

Adding a new command:
    1. Create claimwitness/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import logging

import click

from claimwitness.cli.inspect import extract_command, identifier_command, witnesses_command
from claimwitness.cli.verify import verify_command


@click.group()
@click.version_option(package_name="claimwitness")
@click.option(
    "--verbose", "-v",
    count=True,
    help="Log to stderr. Repeat for debug output.",
)
def cli(verbose: int) -> None:
    """
    ClaimWitness — witness-signed claim verification.

    \b
    Commands:
      verify      Verify a proof against a witness registry.
      identifier  Recompute a claim identifier.
      witnesses   List the witnesses expected to sign a claim.
      extract     Pull string fields out of a claim context.

    \b
    Quick start:
      claimwitness verify proof.json --registry epochs.json
      claimwitness verify proof.json --registry epochs.json --format json
      claimwitness -vv verify proof.json --registry epochs.json --strict
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


cli.add_command(verify_command)
cli.add_command(identifier_command)
cli.add_command(witnesses_command)
cli.add_command(extract_command)
