"""
tests/test_cli.py

claimwitness command line: exit codes and JSON output.

Exit codes:
    0  valid / match
    1  rejected / mismatch / required field absent
    2  unreadable input
"""

import json

import pytest
from click.testing import CliRunner

from claimwitness.cli import cli

from conftest import SAMPLE_IDENTIFIER, SAMPLE_TS


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def files(tmp_path, registry, make_proof):
    """Registry and a valid proof written to disk."""
    registry_path = tmp_path / "epochs.json"
    proof_path    = tmp_path / "proof.json"
    registry.save(registry_path)
    proof_path.write_text(json.dumps(make_proof(registry).to_dict()), encoding="utf-8")
    return proof_path, registry_path


def _rewrite(path, mutate):
    data = json.loads(path.read_text(encoding="utf-8"))
    mutate(data)
    path.write_text(json.dumps(data), encoding="utf-8")


class TestVerifyCommand:

    def test_valid_proof_human(self, runner, files):
        proof, registry = files
        result = runner.invoke(cli, ["verify", str(proof), "--registry", str(registry), "--no-color"])

        assert result.exit_code == 0, result.output
        assert "VALID" in result.stdout

    def test_valid_proof_json(self, runner, files, registry):
        proof, registry_path = files
        result = runner.invoke(
            cli, ["verify", str(proof), "--registry", str(registry_path), "--format", "json"]
        )

        assert result.exit_code == 0
        report = json.loads(result.stdout)["claimwitness_verify"]
        assert report["valid"] is True
        assert report["reason"] == "valid"
        assert report["registry_hash"] == registry.snapshot_hash()
        assert report["config"] == {"strict_witness_set": False, "enforce_epoch_window": True}

    def test_rejected_proof_exit_1(self, runner, files):
        proof, registry = files
        _rewrite(proof, lambda d: d["claimInfo"].update(context="{}"))

        result = runner.invoke(
            cli, ["verify", str(proof), "--registry", str(registry), "--format", "json"]
        )
        assert result.exit_code == 1
        report = json.loads(result.stdout)["claimwitness_verify"]
        assert report["reason"] == "identifier_mismatch"

    def test_quiet_prints_nothing(self, runner, files):
        proof, registry = files
        result = runner.invoke(cli, ["verify", str(proof), "--registry", str(registry), "--quiet"])
        assert result.exit_code == 0
        assert result.stdout == ""

    def test_strict_flag(self, runner, tmp_path, registry, make_proof, witness_keys):
        """An extra unselected signer passes by default and fails with --strict."""
        proof_path    = tmp_path / "proof.json"
        registry_path = tmp_path / "epochs.json"
        registry.save(registry_path)
        signers = [witness_keys[i] for i in (4, 0, 6, 3, 1, 2)]
        proof_path.write_text(
            json.dumps(make_proof(registry, signers=signers).to_dict()), encoding="utf-8"
        )

        base = ["verify", str(proof_path), "--registry", str(registry_path), "--quiet"]
        assert runner.invoke(cli, base).exit_code == 0
        assert runner.invoke(cli, base + ["--strict"]).exit_code == 1

    def test_config_file(self, runner, files, tmp_path):
        proof, registry = files
        config = tmp_path / "verifier.yaml"
        config.write_text("verifier:\n  strict_witness_set: true\n", encoding="utf-8")

        result = runner.invoke(cli, [
            "verify", str(proof), "--registry", str(registry),
            "--config", str(config), "--format", "json",
        ])
        assert result.exit_code == 0
        report = json.loads(result.stdout)["claimwitness_verify"]
        assert report["config"]["strict_witness_set"] is True

    def test_missing_proof_exit_2(self, runner, files, tmp_path):
        _, registry = files
        result = runner.invoke(
            cli, ["verify", str(tmp_path / "absent.json"), "--registry", str(registry)]
        )
        assert result.exit_code == 2

    def test_bad_json_exit_2(self, runner, files):
        proof, registry = files
        proof.write_text("{not json", encoding="utf-8")
        result = runner.invoke(
            cli, ["verify", str(proof), "--registry", str(registry), "--format", "json"]
        )
        assert result.exit_code == 2
        assert "error" in json.loads(result.stdout)["claimwitness_verify"]

    def test_inconsistent_registry_exit_2(self, runner, files):
        proof, registry = files
        _rewrite(registry, lambda d: d["epochs"][0].update(requiredSignatures=0))
        result = runner.invoke(cli, ["verify", str(proof), "--registry", str(registry)])
        assert result.exit_code == 2


class TestInspectCommands:

    def test_identifier_match(self, runner, files):
        proof, _ = files
        result = runner.invoke(cli, ["identifier", str(proof), "--format", "json"])

        assert result.exit_code == 0
        report = json.loads(result.stdout)["claimwitness_identifier"]
        assert report["computed"] == SAMPLE_IDENTIFIER
        assert report["match"] is True

    def test_identifier_mismatch(self, runner, files):
        proof, _ = files
        _rewrite(proof, lambda d: d["claimInfo"].update(provider="https"))
        result = runner.invoke(cli, ["identifier", str(proof)])
        assert result.exit_code == 1
        assert "MISMATCH" in result.stdout

    def test_witnesses_listing(self, runner, files, witness_keys):
        _, registry = files
        result = runner.invoke(cli, [
            "witnesses", "--registry", str(registry),
            "--identifier", SAMPLE_IDENTIFIER,
            "--timestamp", str(SAMPLE_TS),
            "--format", "json",
        ])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)["claimwitness_witnesses"]
        assert report["epoch"] == 1
        assert report["required"] == 5
        assert [w["addr"] for w in report["witnesses"]] == [
            witness_keys[i].address for i in (4, 0, 6, 3, 1)
        ]
        assert report["witnesses"][0]["host"] == "wss://witness-4.example"

    def test_witnesses_unknown_epoch(self, runner, files):
        _, registry = files
        result = runner.invoke(cli, [
            "witnesses", "--registry", str(registry),
            "--identifier", SAMPLE_IDENTIFIER,
            "--timestamp", str(SAMPLE_TS),
            "--epoch", "9",
        ])
        assert result.exit_code == 2

    def test_extract_fields(self, runner, files):
        proof, _ = files
        result = runner.invoke(cli, ["extract", str(proof), "KYC_status", "lastName"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"KYC_status": "ADVANCED", "lastName": "Snoj"}

    def test_extract_require(self, runner, files):
        proof, _ = files
        result = runner.invoke(cli, ["extract", str(proof), "KYC_status", "nationality", "--require"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["nationality"] == ""

    def test_extract_raw_marker(self, runner, files):
        proof, _ = files
        result = runner.invoke(cli, ["extract", str(proof), "--raw", '"firstName":"'])
        assert json.loads(result.stdout) == {'"firstName":"': "Jure"}


class TestGroup:

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for name in ("verify", "identifier", "witnesses", "extract"):
            assert name in result.output
