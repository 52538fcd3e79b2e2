"""
Utilities for generating secrets and Traefik basic-auth credentials.
"""
import base64
import secrets

from ..RUNNERS.command_runner import CommandRunner


def generate_hex(nbytes: int = 32) -> str:
    """
    Random hex string, equivalent to `openssl rand -hex N`.
    """
    return secrets.token_hex(nbytes)


def generate_base64(nbytes: int = 32) -> str:
    """
    Random base64 string, equivalent to `openssl rand -base64 N`.
    """
    return base64.b64encode(secrets.token_bytes(nbytes)).decode("ascii")


def escape_compose(value: str) -> str:
    """
    Doubles every `$` so Compose does not treat it as variable interpolation.
    """
    return value.replace("$", "$$")


def apr1_hash(runner: CommandRunner, password: str) -> str:
    """
    Hashes a password in the Apache MD5 (apr1) format understood by Traefik's
    basicauth middleware. The password goes through stdin, never argv.

    :param runner: Runner used to call openssl.
    :param password: The plaintext password.
    :return: The `$apr1$...` hash.
    """
    result = runner.run(["openssl", "passwd", "-apr1", "-stdin"],
                        input_text=password, mutating=False)
    return result.stdout.strip()


def basic_auth_users(runner: CommandRunner, user: str, password: str) -> str:
    """
    Builds the `user:hash` value of a basicauth.users label, escaped for Compose.
    """
    return f"{user}:{escape_compose(apr1_hash(runner, password))}"
