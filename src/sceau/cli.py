"""sceau CLI - code signing for published packages."""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path

import click

from sceau import __version__
from sceau.config import SCEAU_FILE_NAME, SceauConfig
from sceau.core import SceauVerificationFailure, sign, verify
from sceau.document import read_sceau, write_sceau
from sceau.errors import KeyMismatchError
from sceau.files import list_package_files
from sceau.keys import generate_key_pair

logger = logging.getLogger(__name__)


def handle_error(error: Exception, debug: bool) -> None:
    """Handle errors with structured output.

    Args:
        error: The exception that occurred
        debug: Whether to show full traceback
    """
    if debug:
        traceback.print_exc()
    else:
        click.echo(f"Error: {error}", err=True)
        for detail in getattr(error, "errors", []):
            click.echo(f"  - {detail}", err=True)
    sys.exit(1)


def _relative_to(path: Path, base: Path) -> str | None:
    try:
        return path.resolve().relative_to(base.resolve()).as_posix()
    except ValueError:
        return None


@click.group()
@click.version_option(version=__version__, prog_name="sceau")
@click.option('--debug', is_flag=True, help='Enable debug mode (show full tracebacks)')
@click.option('--verbose', '-v', is_flag=True, help='Log per-file progress')
@click.pass_context
def cli(ctx: click.Context, debug: bool, verbose: bool):
    """sceau - Code signing for published packages."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug


@cli.command()
@click.option('--seed', type=str, help='Generate a deterministic key pair from a 32 byte hex seed')
@click.option('--compact', is_flag=True, help='Only output the private key value')
@click.option('--pub', is_flag=True, help='Also output the public key')
@click.pass_context
def keygen(ctx: click.Context, seed: str | None, compact: bool, pub: bool):
    """Generate an Ed25519 signature key pair."""
    debug = ctx.obj.get('debug', False)

    try:
        keypair = generate_key_pair(seed)
        if compact:
            click.echo(keypair.private_key_hex)
            return
        click.echo(f"SCEAU_PRIVATE_KEY={keypair.private_key_hex}")
        if pub:
            click.echo(f"SCEAU_PUBLIC_KEY={keypair.public_key_hex}")
    except Exception as e:
        handle_error(e, debug)


@cli.command(name="sign")
@click.option('--package-dir', '-p', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Path to the package to process (default: cwd)')
@click.option('--file', '-f', 'sceau_file', default=SCEAU_FILE_NAME, show_default=True,
              help='Output JSON file, relative to the package directory')
@click.option('--source', type=str, help='Permalink to the source code (env: SCEAU_SOURCE_URL)')
@click.option('--build', type=str, help='Permalink to the public CI/CD run (env: SCEAU_BUILD_URL)')
@click.option('--private-key', type=str, help='Signature private key (env: SCEAU_PRIVATE_KEY)')
@click.option('--ignore', multiple=True, help='Ignore files matching the regular expression (repeatable)')
@click.option('--quiet', '-q', is_flag=True, help="Don't print the document")
@click.pass_context
def sign_command(
    ctx: click.Context,
    package_dir: Path | None,
    sceau_file: str,
    source: str | None,
    build: str | None,
    private_key: str | None,
    ignore: tuple[str, ...],
    quiet: bool,
):
    """List package files, hash and sign them, then sign the whole document.

    Examples:
      sceau sign --source https://github.com/org/repo/tree/abc123
      sceau sign --package-dir ./dist --ignore '\\.map$' --quiet
    """
    debug = ctx.obj.get('debug', False)

    try:
        config = SceauConfig.from_env()
        private_key = private_key or config.private_key
        if not private_key:
            raise click.UsageError(
                "Missing private key. Pass it either via the --private-key option "
                "or the SCEAU_PRIVATE_KEY environment variable."
            )

        package_dir = package_dir or Path.cwd()
        output_path = package_dir / sceau_file
        exclude = [p for p in [_relative_to(output_path, package_dir)] if p]

        files = list_package_files(package_dir, exclude=exclude, ignore=ignore)
        logger.debug("Selected %d files in %s", len(files), package_dir)
        sceau = sign(
            package_dir,
            files,
            private_key=private_key,
            source_url=source or config.source_url,
            build_url=build or config.build_url,
            timestamp=datetime.now(timezone.utc),
            ignore_files=exclude,
            workers=config.workers,
        )
        write_sceau(output_path, sceau)

        if not quiet:
            click.echo(json.dumps(sceau.to_dict(), indent=2, ensure_ascii=False))
    except click.UsageError:
        raise
    except Exception as e:
        handle_error(e, debug)


@cli.command(name="verify")
@click.option('--package-dir', '-p', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Path to the package to process (default: cwd)')
@click.option('--file', '-f', 'sceau_file', default=SCEAU_FILE_NAME, show_default=True,
              help='Path to the sceau file, relative to the package directory')
@click.option('--public-key', type=str,
              help='Public key to verify against (env: SCEAU_PUBLIC_KEY, default: embedded key)')
@click.option('--strict', is_flag=True, help='Fail if the package is not signed')
@click.option('--json', 'as_json', is_flag=True, help='Output the verification result as JSON')
@click.pass_context
def verify_command(
    ctx: click.Context,
    package_dir: Path | None,
    sceau_file: str,
    public_key: str | None,
    strict: bool,
    as_json: bool,
):
    """Verify a signed package and display associated metadata.

    Examples:
      sceau verify
      sceau verify --package-dir ./node_modules/some-package --strict
      sceau verify --public-key <32 bytes hex>
    """
    debug = ctx.obj.get('debug', False)

    try:
        config = SceauConfig.from_env()
        package_dir = package_dir or Path.cwd()
        sceau_path = package_dir / sceau_file

        if not sceau_path.is_file():
            if strict:
                raise FileNotFoundError(f"This package is not signed: {sceau_path} not found")
            click.echo("This package is not signed")
            return

        sceau = read_sceau(sceau_path)
        try:
            result = verify(
                sceau,
                package_dir,
                public_key=public_key or config.public_key,
                workers=config.workers,
            )
        except KeyMismatchError as e:
            click.echo(f"❌ {e}", err=True)
            click.echo(f"\n  Supplied public key: {e.expected}", err=True)
            click.echo(f"  Embedded public key: {e.embedded}", err=True)
            sys.exit(1)

        if as_json:
            click.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))
        elif isinstance(result, SceauVerificationFailure):
            click.echo("❌ Verification failed")
            click.echo(f"  Signature: {'✅ VALID' if result.signature_verified else '❌ INVALID'}")
            if result.manifest_errors:
                click.echo(f"  ⚠️  Files with errors: {len(result.manifest_errors)}")
                for failure in result.manifest_errors:
                    click.echo(f"    - {failure.path}: {failure.message} [{failure.mismatch.value}]")
        else:
            click.echo("✅ Signature verified")
            click.echo(f"Source:     {result.source_url}")
            click.echo(f"Build:      {result.build_url}")
            click.echo(f"Signed on:  {result.timestamp}")

        if not result.ok:
            sys.exit(1)
    except Exception as e:
        handle_error(e, debug)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
