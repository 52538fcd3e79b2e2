"""
Idempotent management of the named Swarm resources stacks depend on:
volumes, overlay networks, secrets and configs.
"""
import logging
from typing import Iterable, Optional

import click

from .docker_client import DockerClient
from ..RUNNERS.command_runner import CommandError

logger = logging.getLogger(__name__)


class SecretInUseError(RuntimeError):
    """Raised when a secret or config cannot be replaced because a service still uses it."""


def in_use_message(kind: str, name: str, stack: Optional[str], stderr: str) -> str:
    remedy = f"docker stack rm {stack}" if stack else "docker stack rm <stack>"
    return (f"{kind} '{name}' could not be removed, it is probably still used by a deployed "
            f"stack. Remove that stack first: {remedy}\n{stderr.strip()}")


class ResourceManager:
    """
    Creates volumes and networks only when missing, and replaces secrets and
    configs by removing and recreating them.
    """
    def __init__(self, docker: DockerClient):
        """
        Initializes the resource manager.

        :param docker: Client used for inspect/create/remove calls.
        """
        self.docker = docker

    def ensure_volume(self, name: str) -> bool:
        """
        Creates a named volume unless it already exists.

        :param name: The volume name.
        :return: True if the volume was created.
        """
        if self.docker.volume_exists(name):
            click.echo(f"Volume '{name}' already exists.")
            return False
        self.docker.create_volume(name)
        click.echo(f"Volume '{name}' created.")
        return True

    def ensure_volumes(self, names: Iterable[str]) -> None:
        for name in names:
            self.ensure_volume(name)

    def ensure_network(self, name: str) -> bool:
        """
        Creates an attachable overlay network unless it already exists.

        :param name: The network name.
        :return: True if the network was created.
        """
        if self.docker.network_exists(name):
            click.echo(f"Network '{name}' already exists.")
            return False
        self.docker.create_overlay_network(name)
        click.echo(f"Network '{name}' created.")
        return True

    def replace_secret(self, name: str, value: str, stack: Optional[str] = None) -> None:
        """
        Removes an existing secret and creates it again with a new value.

        Services pinned to the old secret keep it until they are redeployed;
        Docker refuses the removal while a service still references it.

        :param name: The secret name.
        :param value: The plaintext value, piped to Docker on stdin.
        :param stack: Stack that uses the secret, named in the error.
        :raises SecretInUseError: If Docker refuses to remove the old secret.
        """
        if self.docker.secret_exists(name):
            try:
                self.docker.remove_secret(name)
            except CommandError as e:
                raise SecretInUseError(in_use_message("Secret", name, stack, e.stderr)) from e
            click.echo(f"Removed existing secret '{name}' to create a new one.")
        self.docker.create_secret(name, value)
        logger.debug("Secret %s created", name)
        click.echo(f"Secret '{name}' created.")

    def replace_config(self, name: str, content: str, stack: Optional[str] = None) -> None:
        """
        Removes an existing config and creates it again with new content.

        :param name: The config name.
        :param content: The config body, piped to Docker on stdin.
        :param stack: Stack that uses the config, named in the error.
        :raises SecretInUseError: If Docker refuses to remove the old config.
        """
        if self.docker.config_exists(name):
            try:
                self.docker.remove_config(name)
            except CommandError as e:
                raise SecretInUseError(in_use_message("Config", name, stack, e.stderr)) from e
        self.docker.create_config(name, content)
        click.echo(f"Config '{name}' created.")
