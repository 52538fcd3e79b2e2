# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Thin wrapper around the Docker CLI for Swarm resources and stacks.
"""
import logging
from typing import List, Optional, Sequence

from ..RUNNERS.command_runner import CommandRunner, CommandResult

logger = logging.getLogger(__name__)


class DockerUnavailableError(RuntimeError):
    """Raised when the Docker daemon cannot be reached."""


class DockerClient:
    """
    Issues `docker` commands through a CommandRunner.
    """

    def __init__(self, runner: CommandRunner, use_sudo: bool = False):
        """
        Initializes the client.

        :param runner: Runner executing the commands.
        :param use_sudo: Prefix every call with sudo, for users not yet in the docker group.
        """
        self.runner = runner
        self.use_sudo = use_sudo

    def _run(self, args: Sequence[str], **kwargs) -> CommandResult:
        command = (["sudo", "docker"] if self.use_sudo else ["docker"]) + list(args)
        return self.runner.run(command, **kwargs)

    def _succeeds(self, args: Sequence[str]) -> bool:
        return self._run(args, check=False, mutating=False).ok

    # --- Daemon and Swarm ---

    def is_available(self) -> bool:
        """True when `docker info` succeeds."""
        return self._succeeds(["info"])

    def require_available(self) -> None:
        """
        Pre-flight check run before any stack is touched.

        :raises DockerUnavailableError: If the daemon cannot be reached.
        """
        if not self.is_available():
            raise DockerUnavailableError(
                "Docker is not running or you don't have permission to use it."
            )

    def swarm_state(self) -> str:
        """Local node Swarm state: 'active', 'inactive', 'pending', ..."""
        result = self._run(["info", "--format", "{{.Swarm.LocalNodeState}}"],
                           check=False, mutating=False)
        return result.stdout.strip() if result.ok else ""

    def swarm_init(self, advertise_addr: Optional[str] = None) -> None:
        args = ["swarm", "init"]
        if advertise_addr:
            args += ["--advertise-addr", advertise_addr]
        self._run(args)

    def swarm_join_command(self) -> str:
        """The `docker swarm join ...` line for adding a worker node."""
        result = self._run(["swarm", "join-token", "worker"], check=False, mutating=False)
        for line in result.stdout.splitlines():
            if "docker swarm join" in line:
                return line.strip()
        return ""

    # --- Networks ---

    def network_exists(self, name: str) -> bool:
        return self._succeeds(["network", "inspect", name])

    def create_overlay_network(self, name: str) -> None:
        self._run(["network", "create", "--driver=overlay", "--attachable", name])

    # --- Volumes ---

    def volume_exists(self, name: str) -> bool:
        return self._succeeds(["volume", "inspect", name])

    def create_volume(self, name: str) -> None:
        self._run(["volume", "create", name])

    def remove_volume(self, name: str) -> bool:
        return self._run(["volume", "rm", name], check=False).ok

    # --- Secrets and configs ---

    def secret_exists(self, name: str) -> bool:
        return self._succeeds(["secret", "inspect", name])

    def create_secret(self, name: str, value: str) -> None:
        """Creates a secret from stdin so the value never appears in argv."""
        self._run(["secret", "create", name, "-"], input_text=value)

    def remove_secret(self, name: str) -> None:
        self._run(["secret", "rm", name])

    def config_exists(self, name: str) -> bool:
        return self._succeeds(["config", "inspect", name])

    def create_config(self, name: str, content: str) -> None:
        self._run(["config", "create", name, "-"], input_text=content)

    def remove_config(self, name: str) -> None:
        self._run(["config", "rm", name])

    # --- Stacks and services ---

    def stack_deploy(self, compose_file: str, stack: str) -> None:
        self._run(["stack", "deploy", "-c", compose_file, stack])

    def stack_rm(self, stack: str) -> bool:
        return self._run(["stack", "rm", stack], check=False).ok

    def service_logs(self, service: str) -> str:
        result = self._run(["service", "logs", service], check=False, mutating=False)
        return result.stdout + result.stderr

    def running_task_id(self, service: str) -> Optional[str]:
        """ID of the first task of a service whose desired state is running."""
        result = self._run(["service", "ps", service, "-f", "desired-state=running",
                            "--format", "{{.ID}}", "--no-trunc"],
                           check=False, mutating=False)
        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return lines[0] if result.ok and lines else None

    def task_container_id(self, task_id: str) -> Optional[str]:
        """Container backing a Swarm task, once the scheduler has assigned one."""
        result = self._run(["inspect", task_id, "--format",
                            "{{.Status.ContainerStatus.ContainerID}}"],
                           check=False, mutating=False)
        container = result.stdout.strip()
        return container if result.ok and container else None

    def exec(self,
             container: str,
             args: List[str],
             input_text: Optional[str] = None,
             redact: Sequence[str] = ()) -> CommandResult:
        """Runs a command inside a container, with stdin attached when input is given."""
        prefix = ["exec", "-i"] if input_text is not None else ["exec"]
        return self._run(prefix + [container] + list(args),
                         input_text=input_text, redact=redact)
