"""Tests for the sceau command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from sceau.cli import cli

from conftest import SEED, PACKAGE_FILES

CLEAN_ENV = {
    "SCEAU_PRIVATE_KEY": None,
    "SCEAU_PUBLIC_KEY": None,
    "SCEAU_SOURCE_URL": None,
    "SCEAU_BUILD_URL": None,
    "SCEAU_WORKERS": None,
}


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def run_sign(runner: CliRunner, package_dir: Path, key_pair, *extra: str):
    return runner.invoke(
        cli,
        ["sign", "--package-dir", str(package_dir), "--private-key", key_pair.private_key_hex, *extra],
        env=CLEAN_ENV,
    )


class TestKeygen:
    """Test the keygen command."""

    def test_seeded(self, runner: CliRunner, key_pair):
        result = runner.invoke(cli, ["keygen", "--seed", SEED, "--pub"], env=CLEAN_ENV)

        assert result.exit_code == 0
        assert f"SCEAU_PRIVATE_KEY={key_pair.private_key_hex}" in result.output
        assert f"SCEAU_PUBLIC_KEY={key_pair.public_key_hex}" in result.output

    def test_compact(self, runner: CliRunner, key_pair):
        result = runner.invoke(cli, ["keygen", "--seed", SEED, "--compact"], env=CLEAN_ENV)

        assert result.exit_code == 0
        assert result.output.strip() == key_pair.private_key_hex

    def test_random(self, runner: CliRunner):
        result = runner.invoke(cli, ["keygen", "--compact"], env=CLEAN_ENV)

        assert result.exit_code == 0
        assert len(result.output.strip()) == 128

    def test_invalid_seed(self, runner: CliRunner):
        result = runner.invoke(cli, ["keygen", "--seed", "abcd"], env=CLEAN_ENV)

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestSignCommand:
    """Test the sign command."""

    def test_writes_document(self, runner: CliRunner, package_dir: Path, key_pair):
        result = run_sign(runner, package_dir, key_pair, "--source", "https://github.com/org/repo")

        assert result.exit_code == 0, result.output
        document = json.loads((package_dir / "sceau.json").read_text())
        assert document["publicKey"] == key_pair.public_key_hex
        assert document["sourceURL"] == "https://github.com/org/repo"
        assert document["buildURL"] == "unknown://local"
        assert [e["path"] for e in document["manifest"]] == sorted(PACKAGE_FILES)
        assert json.loads(result.output) == document

    def test_resign_excludes_own_file(self, runner: CliRunner, package_dir: Path, key_pair):
        run_sign(runner, package_dir, key_pair, "--quiet")
        result = run_sign(runner, package_dir, key_pair, "--quiet")

        assert result.exit_code == 0
        assert result.output == ""
        document = json.loads((package_dir / "sceau.json").read_text())
        assert "sceau.json" not in [e["path"] for e in document["manifest"]]

    def test_ignore(self, runner: CliRunner, package_dir: Path, key_pair):
        result = run_sign(runner, package_dir, key_pair, "--quiet", "--ignore", r"\.md$")

        assert result.exit_code == 0
        document = json.loads((package_dir / "sceau.json").read_text())
        assert "README.md" not in [e["path"] for e in document["manifest"]]

    def test_private_key_from_env(self, runner: CliRunner, package_dir: Path, key_pair):
        env = dict(CLEAN_ENV, SCEAU_PRIVATE_KEY=key_pair.private_key_hex)
        result = runner.invoke(cli, ["sign", "--package-dir", str(package_dir), "--quiet"], env=env)

        assert result.exit_code == 0
        assert (package_dir / "sceau.json").exists()

    def test_missing_private_key(self, runner: CliRunner, package_dir: Path):
        result = runner.invoke(cli, ["sign", "--package-dir", str(package_dir)], env=CLEAN_ENV)

        assert result.exit_code == 2
        assert "Missing private key" in result.output

    def test_invalid_url(self, runner: CliRunner, package_dir: Path, key_pair):
        result = run_sign(runner, package_dir, key_pair, "--build", "not a url")

        assert result.exit_code == 1
        assert "Invalid build URL" in result.output
        assert not (package_dir / "sceau.json").exists()


class TestVerifyCommand:
    """Test the verify command."""

    def test_verified(self, runner: CliRunner, package_dir: Path, key_pair):
        run_sign(runner, package_dir, key_pair, "--quiet")

        result = runner.invoke(cli, ["verify", "--package-dir", str(package_dir)], env=CLEAN_ENV)

        assert result.exit_code == 0, result.output
        assert "Signature verified" in result.output
        assert "unknown://local" in result.output

    def test_tampered(self, runner: CliRunner, package_dir: Path, key_pair):
        run_sign(runner, package_dir, key_pair, "--quiet")
        (package_dir / "dist" / "index.js").write_text("module.exports = 43\n")

        result = runner.invoke(cli, ["verify", "--package-dir", str(package_dir)], env=CLEAN_ENV)

        assert result.exit_code == 1
        assert "dist/index.js" in result.output
        assert "[hash]" in result.output

    def test_json_output(self, runner: CliRunner, package_dir: Path, key_pair):
        run_sign(runner, package_dir, key_pair, "--quiet")
        (package_dir / "README.md").unlink()

        result = runner.invoke(
            cli, ["verify", "--package-dir", str(package_dir), "--json"], env=CLEAN_ENV
        )

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["outcome"] == "failure"
        assert data["manifestErrors"][0]["path"] == "README.md"

    def test_not_signed(self, runner: CliRunner, package_dir: Path):
        result = runner.invoke(cli, ["verify", "--package-dir", str(package_dir)], env=CLEAN_ENV)

        assert result.exit_code == 0
        assert "This package is not signed" in result.output

    def test_not_signed_strict(self, runner: CliRunner, package_dir: Path):
        result = runner.invoke(
            cli, ["verify", "--package-dir", str(package_dir), "--strict"], env=CLEAN_ENV
        )

        assert result.exit_code == 1

    def test_pinned_key_mismatch(self, runner: CliRunner, package_dir: Path, key_pair, other_key_pair):
        run_sign(runner, package_dir, key_pair, "--quiet")

        result = runner.invoke(
            cli,
            ["verify", "--package-dir", str(package_dir), "--public-key", other_key_pair.public_key_hex],
            env=CLEAN_ENV,
        )

        assert result.exit_code == 1
        assert "different private key" in result.output
        assert other_key_pair.public_key_hex in result.output

    def test_pinned_key_from_env(self, runner: CliRunner, package_dir: Path, key_pair):
        run_sign(runner, package_dir, key_pair, "--quiet")
        env = dict(CLEAN_ENV, SCEAU_PUBLIC_KEY=key_pair.public_key_hex)

        result = runner.invoke(cli, ["verify", "--package-dir", str(package_dir)], env=env)

        assert result.exit_code == 0

    def test_invalid_document(self, runner: CliRunner, package_dir: Path):
        (package_dir / "sceau.json").write_text('{"$schema": "https://example.com/v9"}')

        result = runner.invoke(cli, ["verify", "--package-dir", str(package_dir)], env=CLEAN_ENV)

        assert result.exit_code == 1
        assert "Unsupported sceau schema" in result.output
