"""
claimwitness/cli/inspect.py

Read-only helpers for the off-chain side of a claim:

    claimwitness identifier <proof.json>
        Recompute the claim identifier and compare it to the stated one.

    claimwitness witnesses --registry epochs.json --identifier 0x.. --timestamp T [--epoch N]
        The ordered witnesses that must sign a claim.

    claimwitness extract <proof.json> KYC_status firstName lastName
        Pull string fields out of the claim context.
"""

import json
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from claimwitness.cli.style import _Color, _emit_error
from claimwitness.cli.verify import load_json_file
from claimwitness.core.exceptions import ClaimWitnessError
from claimwitness.core.extractor import FIELD_ABSENT, extract_fields, field_marker
from claimwitness.core.models import Proof, normalize_identifier
from claimwitness.core.registry import WitnessRegistry
from claimwitness.core.selection import fetch_witnesses_for_claim


def _load_proof(path: str, fmt: str, section: str) -> Proof:
    try:
        return Proof.from_dict(load_json_file(Path(path)))
    except FileNotFoundError as e:
        _emit_error(str(e), fmt, False, section)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        _emit_error(f"cannot read proof {path}: {e!r}", fmt, False, section)
    sys.exit(2)


# ── identifier ────────────────────────────────────────────────────────────────

@click.command(name="identifier")
@click.argument("proof", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
def identifier_command(proof: str, fmt: str) -> None:
    """
    Recompute the identifier of PROOF's claim info.

    Exit 0 when it matches the identifier stated in the signed claim.
    """
    _Color.configure(True)
    loaded = _load_proof(proof, fmt, "claimwitness_identifier")
    info = loaded.claim_info

    if not info.validate_schema():
        _emit_error("claimInfo fields must be strings", fmt, False, "claimwitness_identifier")
        sys.exit(2)

    computed = info.identifier()
    try:
        stated: Optional[str] = normalize_identifier(loaded.claim.identifier)
    except ClaimWitnessError:
        stated = None
    match = computed == stated

    if fmt == "json":
        click.echo(json.dumps({
            "claimwitness_identifier": {
                "computed": computed,
                "stated":   stated,
                "match":    match,
            }
        }, indent=2))
    else:
        click.echo(f"computed  {computed}")
        click.echo(f"stated    {stated if stated else loaded.claim.identifier!r}")
        click.echo(_Color.green("match") if match else _Color.red("MISMATCH"))

    sys.exit(0 if match else 1)


# ── witnesses ─────────────────────────────────────────────────────────────────

@click.command(name="witnesses")
@click.option("--registry", "registry_path", type=click.Path(), required=True, metavar="PATH")
@click.option("--identifier", required=True, help="Claim identifier (32-byte hex).")
@click.option("--timestamp", "timestamp_s", type=int, required=True, help="Claim timestampS.")
@click.option("--epoch", "epoch_id", type=int, default=None, help="Epoch id. Defaults to current.")
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
def witnesses_command(
    registry_path: str,
    identifier:    str,
    timestamp_s:   int,
    epoch_id:      Optional[int],
    fmt:           str,
) -> None:
    """
    List, in order, the witnesses that must sign a claim.
    """
    _Color.configure(True)
    section = "claimwitness_witnesses"
    try:
        registry = WitnessRegistry.from_file(Path(registry_path))
        epoch_id = registry.current_epoch() if epoch_id is None else epoch_id
        epoch = registry.fetch_epoch(epoch_id)
        if epoch is None:
            raise ClaimWitnessError(f"epoch {epoch_id} does not exist")
        selected = fetch_witnesses_for_claim(epoch, identifier, timestamp_s)
    except FileNotFoundError as e:
        _emit_error(str(e), fmt, False, section)
        sys.exit(2)
    except ClaimWitnessError as e:
        _emit_error(str(e), fmt, False, section)
        sys.exit(2)

    if fmt == "json":
        click.echo(json.dumps({
            section: {
                "epoch":     epoch.id,
                "required":  epoch.required_signatures,
                "witnesses": [w.to_dict() for w in selected],
            }
        }, indent=2))
    else:
        for position, w in enumerate(selected):
            click.echo(f"{position:>3}  {w.address}  {_Color.dim(w.host)}")


# ── extract ───────────────────────────────────────────────────────────────────

@click.command(name="extract")
@click.argument("proof", type=click.Path(exists=False))
@click.argument("fields", nargs=-1, required=True)
@click.option(
    "--raw",
    is_flag=True,
    default=False,
    help='Treat FIELDS as literal markers instead of JSON field names.',
)
@click.option(
    "--require",
    is_flag=True,
    default=False,
    help="Exit 1 when any field is absent.",
)
def extract_command(proof: str, fields: Tuple[str, ...], raw: bool, require: bool) -> None:
    """
    Extract string FIELDS from PROOF's claim context and print them as JSON.
    """
    loaded = _load_proof(proof, "human", "claimwitness_extract")
    context = loaded.claim_info.context
    if not isinstance(context, str):
        _emit_error("claimInfo.context must be a string", "human", False, "claimwitness_extract")
        sys.exit(2)

    markers = {name: (name if raw else field_marker(name)) for name in fields}
    values = extract_fields(context, markers)
    click.echo(json.dumps(values, indent=2))

    if require and any(v == FIELD_ABSENT for v in values.values()):
        sys.exit(1)
