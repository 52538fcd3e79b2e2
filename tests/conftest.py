"""
Shared fixtures: a scripted command runner that never touches the host.
"""
from typing import List, Optional, Sequence

import pytest

from vpsstack.MANAGERS.docker_client import DockerClient
from vpsstack.MANAGERS.environment_manager import EnvironmentManager
from vpsstack.RUNNERS.command_runner import CommandError, CommandResult, CommandRunner


class FakeRunner(CommandRunner):
    """
    Records every command and answers from scripted responses matched by
    argv prefix. Unscripted commands succeed with empty output.
    """
    def __init__(self, dry_run: bool = False):
        super().__init__(dry_run=dry_run)
        self.responses = []
        self.inputs = []

    def script(self, prefix: Sequence[str], returncode: int = 0, stdout: str = "",
               stderr: str = "", times: Optional[int] = None) -> None:
        """Later scripts win over earlier ones; `times` limits how often one answers."""
        self.responses.append({"prefix": list(prefix), "returncode": returncode,
                               "stdout": stdout, "stderr": stderr, "times": times})

    def run(self, command, input_text=None, check=True, mutating=True, redact=(),
            timeout=None, capture=True):
        command = [str(part) for part in command]
        self.history.append(command)
        self.inputs.append(input_text)
        if self.dry_run and mutating:
            return CommandResult(command=command, returncode=0)

        result = CommandResult(command=command, returncode=0)
        for response in reversed(self.responses):
            if command[:len(response["prefix"])] != response["prefix"]:
                continue
            if response["times"] is not None:
                if response["times"] <= 0:
                    continue
                response["times"] -= 1
            result = CommandResult(command=command, returncode=response["returncode"],
                                   stdout=response["stdout"], stderr=response["stderr"])
            break
        if not result.ok and check:
            raise CommandError(command, result.returncode, result.stderr)
        return result

    def calls(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.history if c[:len(prefix)] == list(prefix)]

    def input_for(self, *prefix: str) -> Optional[str]:
        for command, text in zip(self.history, self.inputs):
            if command[:len(prefix)] == list(prefix):
                return text
        return None


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def docker(runner):
    return DockerClient(runner)


@pytest.fixture
def make_env():
    """Builds a non-interactive EnvironmentManager from keyword answers."""
    def _make(**answers):
        environ = {f"VPSSTACK_{k.upper()}": v for k, v in answers.items()}
        return EnvironmentManager(environ=environ, interactive=False)
    return _make


@pytest.fixture
def dry_runner():
    return FakeRunner(dry_run=True)
