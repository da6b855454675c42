"""Key commands: init, show."""
import sys

import click

from ..core.errors import KeyConsistencyError
from ..identity.keys import KeyStore, phi_from_public_key
from .common import EXIT_OK, EXIT_REJECTED, load_config
from .output import error_box, short, success_box


@click.group()
def keys():
    """Local sovereign keypair."""
    pass


@keys.command()
def init():
    """Load the local keypair, creating it on first use."""
    config = load_config()
    store = KeyStore(config.key_dir)
    try:
        keypair = store.load_or_create()
    except KeyConsistencyError as e:
        error_box("Keys Init: INCONSISTENT", str(e), f"inspect {config.key_dir} by hand")
        sys.exit(EXIT_REJECTED)

    success_box("Keys Init: READY", [
        ("Directory", str(config.key_dir)),
        ("Public key", short(keypair.public_key, 40)),
        ("Φ", phi_from_public_key(keypair.public_key)),
        ("Bindings", str(len(store.bindings()))),
    ], "glyph seal <file>")
    sys.exit(EXIT_OK)


@keys.command()
@click.option('--full', is_flag=True, help='Print the full base64url SPKI')
def show(full: bool):
    """Show the persisted public key without creating one."""
    config = load_config()
    store = KeyStore(config.key_dir)
    try:
        keypair = store.load()
    except KeyConsistencyError as e:
        error_box("Keys Show: INCONSISTENT", str(e))
        sys.exit(EXIT_REJECTED)

    if keypair is None:
        error_box("Keys Show: NONE", f"No keypair in {config.key_dir}", "glyph keys init")
        sys.exit(EXIT_REJECTED)

    if full:
        click.echo(keypair.public_key)
        sys.exit(EXIT_OK)

    success_box("Keys", [
        ("Directory", str(config.key_dir)),
        ("Public key", short(keypair.public_key, 40)),
        ("Φ", phi_from_public_key(keypair.public_key)),
        ("Bindings", str(len(store.bindings()))),
    ])
    sys.exit(EXIT_OK)
