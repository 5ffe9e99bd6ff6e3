import sys
from typing import Optional

import click
import structlog
from pydantic import ValidationError

from rtb_crypto.cipher import CipherEngine
from rtb_crypto.errors import RTBCryptoError
from rtb_crypto.iv import create_iv
from rtb_crypto.keys import CryptoKeys
from rtb_crypto.logging_config import configure_logging
from rtb_crypto.price import encrypt_price, try_decrypt_price
from rtb_crypto.ui import print_envelope
from rtb_crypto.utils import CiphertextFormat, b64url_decode, b64url_encode, load_ciphertext

log = structlog.get_logger()


def load_keys(encryption_key: Optional[str], integrity_key: Optional[str], keys_file: Optional[str]) -> CryptoKeys:
    """Build the key pair from a keys file or from base64url options."""
    try:
        if keys_file:
            log.debug("loading keys", source="file")
            return CryptoKeys.from_json_file(keys_file)
        if not encryption_key or not integrity_key:
            raise click.UsageError(
                "Keys are required: pass --keys-file, or --encryption-key and --integrity-key "
                "(or set RTB_ENCRYPTION_KEY and RTB_INTEGRITY_KEY)"
            )
        log.debug("loading keys", source="options")
        return CryptoKeys.from_b64(encryption_key, integrity_key)
    except (RTBCryptoError, ValidationError) as e:
        raise click.BadParameter(str(e), param_hint="keys")


def parse_iv_option(iv_hex: Optional[str]) -> Optional[bytes]:
    if iv_hex is None:
        return None
    try:
        return bytes.fromhex(iv_hex)
    except ValueError:
        raise click.BadParameter(f"not a hex string: {iv_hex}", param_hint="--iv")


def get_engine(ctx: click.Context) -> CipherEngine:
    params = ctx.obj
    keys = load_keys(params["encryption_key"], params["integrity_key"], params["keys_file"])
    return CipherEngine(keys)


@click.group()
@click.option("--encryption-key", envvar="RTB_ENCRYPTION_KEY", help="Encryption key, URL-safe base64")
@click.option("--integrity-key", envvar="RTB_INTEGRITY_KEY", help="Integrity key, URL-safe base64")
@click.option("--keys-file", type=click.Path(exists=True, dir_okay=False), help="JSON file with both keys")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging to stderr")
@click.pass_context
def cli(ctx: click.Context, encryption_key: Optional[str], integrity_key: Optional[str], keys_file: Optional[str], verbose: bool):
    configure_logging(verbose)
    ctx.obj = {
        "encryption_key": encryption_key,
        "integrity_key": integrity_key,
        "keys_file": keys_file,
    }


@cli.command("encrypt-price")
@click.argument("price")
@click.option("--iv", "iv_hex", help="IV as hex; defaults to the current time and a random server id")
@click.pass_context
def encrypt_price_command(ctx: click.Context, price: str, iv_hex: Optional[str]):
    """Encrypt a price such as 1.2 into URL-safe base64."""
    engine = get_engine(ctx)
    try:
        click.echo(encrypt_price(engine, price, parse_iv_option(iv_hex)))
    except (ArithmeticError, ValueError) as e:
        raise click.BadParameter(str(e), param_hint="PRICE")


@cli.command("decrypt-price")
@click.argument("cipher_price")
@click.pass_context
def decrypt_price_command(ctx: click.Context, cipher_price: str):
    """Decrypt and verify an encrypted price."""
    engine = get_engine(ctx)
    price = try_decrypt_price(engine, cipher_price)
    if price is None:
        raise click.ClickException("Price could not be decrypted")
    click.echo(str(price))


@cli.command()
@click.option("--input-path", "-i", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--iv", "iv_hex", help="IV as hex; defaults to the current time and a random server id")
@click.pass_context
def encrypt(ctx: click.Context, input_path: str, iv_hex: Optional[str]):
    """Encrypt a file and print the ciphertext as URL-safe base64."""
    engine = get_engine(ctx)
    with open(input_path, "rb") as f:
        plaintext = f.read()

    iv = parse_iv_option(iv_hex)
    if iv is None:
        iv = create_iv()
    try:
        ciphertext = engine.encrypt(plaintext, iv)
    except RTBCryptoError as e:
        raise click.ClickException(str(e))
    click.echo(b64url_encode(ciphertext))


@cli.command()
@click.option("--ciphertext-path", "-c", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--ciphertext-format",
    "-f",
    type=click.Choice(["b64", "b64_urlsafe", "hex", "raw"]),
    default="b64_urlsafe",
)
@click.option("--output-path", "-o", type=click.Path(dir_okay=False), help="Write the plaintext here instead of stdout")
@click.pass_context
def decrypt(ctx: click.Context, ciphertext_path: str, ciphertext_format: CiphertextFormat, output_path: Optional[str]):
    """Decrypt and verify a ciphertext file."""
    engine = get_engine(ctx)
    try:
        ciphertext = load_ciphertext(ciphertext_path, ciphertext_format)
    except ValueError as e:
        raise click.ClickException(str(e))

    destination = bytearray(len(ciphertext))
    result = engine.try_decrypt(ciphertext, destination)
    if not result:
        log.debug("decrypt failed", failure=str(result.failure), ciphertext_len=len(ciphertext))
        raise click.ClickException("Ciphertext could not be decrypted")
    plaintext = bytes(destination[:result.bytes_written])

    if output_path:
        with open(output_path, "wb") as f:
            f.write(plaintext)
    else:
        sys.stdout.buffer.write(plaintext)
        sys.stdout.buffer.flush()


@cli.command()
@click.argument("ciphertext")
@click.pass_context
def inspect(ctx: click.Context, ciphertext: str):
    """Show the fields of a base64url ciphertext, verifying it when keys are given."""
    data = b64url_decode(ciphertext)
    if data is None:
        raise click.BadParameter("not URL-safe base64", param_hint="CIPHERTEXT")

    verified = None
    params = ctx.obj
    if params["keys_file"] or (params["encryption_key"] and params["integrity_key"]):
        verified = get_engine(ctx).decrypt(data) is not None

    try:
        print_envelope(data, verified)
    except RTBCryptoError as e:
        raise click.ClickException(str(e))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="CIPHERTEXT")


@cli.command("new-iv")
@click.option("--server-id", type=int, help="Server id for bytes 8..15; random when omitted")
def new_iv(server_id: Optional[int]):
    """Print a fresh IV as hex."""
    click.echo(create_iv(server_id=server_id).hex())


if __name__ == "__main__":
    cli()
