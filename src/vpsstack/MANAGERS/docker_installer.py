"""
Docker installation and Swarm bootstrap for the non-root deploy user.
"""
import getpass
import grp
import ipaddress
import logging
import os
import socket
from typing import List, Optional

import click
import psutil

from .docker_client import DockerClient
from .resource_manager import ResourceManager
from ..MODELS.settings import DockerSettings
from ..RUNNERS.command_runner import CommandRunner

logger = logging.getLogger(__name__)

VIRTUAL_INTERFACE_PREFIXES = ("lo", "docker", "br-", "veth", "virbr")


def in_docker_group() -> bool:
    """Whether the current process already carries the docker group."""
    try:
        gid = grp.getgrnam("docker").gr_gid
    except KeyError:
        return False
    return gid in os.getgroups()


def candidate_addresses() -> List[str]:
    """Global IPv4 addresses of the physical interfaces."""
    found = []
    for name, addrs in psutil.net_if_addrs().items():
        if name.startswith(VIRTUAL_INTERFACE_PREFIXES):
            continue
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            ip = ipaddress.ip_address(addr.address)
            if not (ip.is_loopback or ip.is_link_local):
                found.append(addr.address)
    return found


class DockerInstaller:
    """
    Installs docker.io, initializes Swarm and creates the shared network
    and volumes used by Traefik.
    """
    def __init__(self,
                 runner: CommandRunner,
                 settings: Optional[DockerSettings] = None,
                 user: Optional[str] = None,
                 require_non_root: bool = True):
        self.runner = runner
        self.settings = settings or DockerSettings()
        self.user = user or getpass.getuser()
        self.require_non_root = require_non_root

    def check_not_root(self) -> None:
        if self.require_non_root and os.geteuid() == 0:
            raise PermissionError(
                "This command should be run as the non-root deploy user, not as root."
            )

    def ensure_sudo(self) -> None:
        click.echo("### Checking sudo password... ###")
        if self.runner.run(["sudo", "-n", "true"], check=False, mutating=False).ok:
            click.echo("Sudo password is already cached.")
        else:
            click.echo(f"You need to set a password for the user '{self.user}' to use sudo.")
            # Interactive: passwd reads the new password from the terminal.
            self.runner.run(["sudo", "passwd", self.user], capture=False)
        click.echo("### Sudo access confirmed. ###")

    def install(self) -> None:
        click.echo("### Installing Docker... ###")
        self.runner.run(["sudo", "apt-get", "update"])
        self.runner.run(["sudo", "apt-get", "install", "-y", "docker.io"])
        self.runner.run(["sudo", "usermod", "-aG", "docker", self.user])
        click.echo("### Docker installed successfully. ###")
        click.echo("NOTE: Log out and back in for the docker group to apply to your shell.")

    def advertise_addr(self) -> Optional[str]:
        """
        The configured address, or the only public-facing IPv4 address when
        exactly one exists.
        """
        if self.settings.advertise_addr:
            return self.settings.advertise_addr
        addresses = candidate_addresses()
        logger.debug("Candidate advertise addresses: %s", addresses)
        return addresses[0] if len(addresses) == 1 else None

    def docker_client(self) -> DockerClient:
        return DockerClient(self.runner, use_sudo=not in_docker_group())

    def init_swarm(self, docker: DockerClient) -> None:
        click.echo("### Initializing Docker Swarm... ###")
        if docker.swarm_state() == "active":
            click.echo("Docker Swarm is already active.")
            return
        docker.swarm_init(self.advertise_addr())
        click.echo("Docker Swarm initialized.")

    def prepare_resources(self, docker: DockerClient) -> None:
        click.echo("### Creating Docker managed volumes and networks... ###")
        resources = ResourceManager(docker)
        resources.ensure_network(self.settings.network_name)
        resources.ensure_volumes(self.settings.shared_volumes)
        click.echo("### Docker environment is ready. ###")

    def setup(self) -> None:
        """
        Runs every step in order.

        :raises PermissionError: If running as root.
        :raises CommandError: If a command fails.
        """
        self.check_not_root()
        self.ensure_sudo()
        self.install()
        docker = self.docker_client()
        self.init_swarm(docker)
        self.prepare_resources(docker)

        click.echo("#" * 68)
        click.echo(f"###  {'DOCKER SETUP COMPLETE!':<60}###")
        click.echo("#" * 68)
        join = docker.swarm_join_command()
        if join:
            click.echo("To add a worker node to this swarm, run on that node:")
            click.echo(f"  {join}")
        click.echo("Next, deploy Traefik with: vpsstack deploy traefik")
