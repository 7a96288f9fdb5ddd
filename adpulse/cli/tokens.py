"""
Token CLI Commands

Encrypt a Meta access token for storage with META_TOKEN_ENC_KEY.
"""

import click

from ..core.token_cipher import TokenCipher


@click.command('encrypt-token')
@click.option('--token', prompt=True, hide_input=True, help='Plaintext Meta access token')
def encrypt_token_command(token: str):
    """Encrypt an access token (prints the enc.v1 value)"""
    cipher = TokenCipher.from_config()
    if not cipher.has_key:
        raise click.ClickException("META_TOKEN_ENC_KEY is missing or invalid; refusing to print the token unencrypted")

    click.echo(cipher.encrypt(token))
