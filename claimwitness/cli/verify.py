"""
claimwitness/cli/verify.py

claimwitness verify — Proof Verification CLI
=============================================

Usage:
    claimwitness verify <proof.json> --registry epochs.json
    claimwitness verify <proof.json> --registry epochs.json --format json
    claimwitness verify <proof.json> --registry epochs.json --strict
    claimwitness verify <proof.json> --registry epochs.json --config verifier.yaml
    claimwitness verify <proof.json> --registry epochs.json --quiet

Exit codes:
    0  Proof valid
    1  Proof rejected (reason printed)
    2  Error  (file missing, malformed JSON, unreadable registry or config)
"""

import dataclasses
import json
import sys
from pathlib import Path
from typing import Optional

import click

from claimwitness.cli.style import _Color, _emit_error, _row_fail, _row_info, _row_ok
from claimwitness.core.config import VerifierConfig
from claimwitness.core.exceptions import ClaimWitnessError
from claimwitness.core.registry import WitnessRegistry
from claimwitness.core.verification import (
    ReasonCode,
    VerificationResult,
    verify_proof_from_dict,
)


_SECTION = "claimwitness_verify"


def load_json_file(path: Path):
    """Read a JSON document. Raises FileNotFoundError / json.JSONDecodeError."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def resolve_config(config_path: Optional[str], strict: bool, no_epoch_window: bool) -> VerifierConfig:
    """File config if given, else environment. Flags override either."""
    config = (
        VerifierConfig.from_yaml(Path(config_path))
        if config_path
        else VerifierConfig.from_env()
    )
    if strict:
        config = dataclasses.replace(config, strict_witness_set=True)
    if no_epoch_window:
        config = dataclasses.replace(config, enforce_epoch_window=False)
    return config


# ── CLI command ───────────────────────────────────────────────────────────────

@click.command(name="verify")
@click.argument("proof", type=click.Path(exists=False))
@click.option(
    "--registry",
    "registry_path",
    type=click.Path(),
    required=True,
    metavar="PATH",
    help="Witness registry JSON (epochs and witnesses).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Verifier config YAML. Defaults to CLAIMWITNESS_* environment variables.",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Require the signer set to equal the expected witness set exactly.",
)
@click.option(
    "--no-epoch-window",
    is_flag=True,
    default=False,
    help="Do not reject claims timestamped outside their epoch's window.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human (default) or json (CI/automation).",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=rejected, 2=error).",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable ANSI color output.",
)
def verify_command(
    proof:           str,
    registry_path:   str,
    config_path:     Optional[str],
    strict:          bool,
    no_epoch_window: bool,
    fmt:             str,
    quiet:           bool,
    no_color:        bool,
) -> None:
    """
    Verify a witness-signed claim proof against a registry.

    PROOF is the path to a proof JSON document.

    \b
    Examples:
      claimwitness verify proof.json --registry epochs.json
      claimwitness verify proof.json --registry epochs.json --format json
      claimwitness verify proof.json --registry epochs.json --quiet && echo ok
    """
    _Color.configure(not no_color)

    # ── Load ──────────────────────────────────────────────────
    try:
        data     = load_json_file(Path(proof))
        registry = WitnessRegistry.from_file(Path(registry_path))
        config   = resolve_config(config_path, strict, no_epoch_window)
    except FileNotFoundError as e:
        _emit_error(str(e), fmt, quiet, _SECTION)
        sys.exit(2)
    except (ValueError, OSError, ClaimWitnessError) as e:
        _emit_error(str(e), fmt, quiet, _SECTION)
        sys.exit(2)

    schema = registry.validate()
    if not schema:
        _emit_error(
            f"registry is inconsistent: {'; '.join(schema.errors)}", fmt, quiet, _SECTION
        )
        sys.exit(2)

    # ── Verify ────────────────────────────────────────────────
    result = verify_proof_from_dict(data, registry, config)

    if quiet:
        sys.exit(0 if result.valid else 1)

    if fmt == "json":
        _output_json(result, Path(proof), registry, config)
    else:
        _output_human(result, Path(proof), registry, config)

    sys.exit(0 if result.valid else 1)


# ── Human output ──────────────────────────────────────────────────────────────

_GATE_LABELS = {
    ReasonCode.MALFORMED_PROOF:         "Schema",
    ReasonCode.IDENTIFIER_MISMATCH:     "Identifier",
    ReasonCode.UNKNOWN_EPOCH:           "Epoch",
    ReasonCode.EPOCH_OUT_OF_WINDOW:     "Epoch window",
    ReasonCode.INVALID_CONFIGURATION:   "Selection",
    ReasonCode.INSUFFICIENT_SIGNATURES: "Quorum",
    ReasonCode.DUPLICATE_SIGNER:        "Duplicates",
    ReasonCode.UNEXPECTED_SIGNER:       "Signer set",
}


def _output_human(
    result:     VerificationResult,
    proof_path: Path,
    registry:   WitnessRegistry,
    config:     VerifierConfig,
) -> None:
    BAR_HEAVY = "═" * 68
    BAR_LIGHT = "─" * 68
    details   = result.details

    click.echo()
    click.echo(_Color.bold(f"  {BAR_HEAVY}"))
    click.echo(_Color.bold(  "  ClaimWitness  ·  Proof Verification"))
    click.echo(_Color.bold(f"  {BAR_HEAVY}"))
    click.echo()

    click.echo(_row_info("Proof", str(proof_path)))
    if details.get("proof_digest"):
        click.echo(_row_info("Proof digest", details["proof_digest"][:16] + "..."))
    click.echo(_row_info("Registry",
        f"{len(registry)} epoch(s)  ·  current {registry.current_epoch()}"
    ))
    click.echo(_row_info("Mode",
        "strict (exact signer set)" if config.strict_witness_set else "superset"
    ))
    click.echo()

    if result.valid:
        click.echo(_row_ok("Identifier", "matches hash of claim info"))
        click.echo(_row_ok("Epoch", f"{details['epoch']}"))
        click.echo(_row_ok("Quorum",
            f"{len(details['expected_witnesses'])} expected witness(es) signed"
        ))
        for address in details["expected_witnesses"]:
            click.echo(_row_info("", _Color.cyan(address)))
        if details.get("invalid_signatures"):
            click.echo(_row_info("Discarded",
                f"{len(details['invalid_signatures'])} unrecoverable signature(s)"
            ))
    else:
        label = _GATE_LABELS.get(result.reason, "Verification")
        click.echo(_row_fail(label, _Color.red(result.message)))
        for key in ("computed", "stated", "missing", "unexpected", "signer", "errors"):
            if key in details:
                value = details[key]
                if isinstance(value, list):
                    for item in value:
                        click.echo(_row_info(key, str(item)))
                else:
                    click.echo(_row_info(key, str(value)))

    click.echo()
    click.echo(f"  {BAR_LIGHT}")
    if result.valid:
        click.echo(_Color.green(_Color.bold(
            "  ✅  VALID  ·  quorum of expected witnesses confirmed"
        )))
    else:
        click.echo(_Color.red(_Color.bold(
            f"  ❌  REJECTED  ·  {result.reason.value}"
        )))
    click.echo(f"  {BAR_LIGHT}")
    click.echo()


# ── JSON output ───────────────────────────────────────────────────────────────

def _output_json(
    result:     VerificationResult,
    proof_path: Path,
    registry:   WitnessRegistry,
    config:     VerifierConfig,
) -> None:
    out = {
        _SECTION: {
            "proof":         str(proof_path),
            "registry_hash": registry.snapshot_hash(),
            "config":        config.to_dict(),
            **result.to_dict(),
        }
    }
    click.echo(json.dumps(out, indent=2))
