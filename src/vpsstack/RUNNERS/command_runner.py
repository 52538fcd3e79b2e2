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
Execution of external commands (apt-get, docker, openssl, ufw, ...) with
captured output and an optional dry-run mode.
"""
import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """
    Raised when a checked command exits with a non-zero status.
    """
    def __init__(self, command: Sequence[str], returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed ({returncode}): {shlex.join(self.command)}"
        if stderr:
            message += f"\n{stderr.strip()}"
        super().__init__(message)


@dataclass
class CommandResult:
    """Outcome of a single command."""

    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class CommandRunner:
    """
    Runs commands as argument lists, never through a shell.

    In dry-run mode, commands flagged as mutating are only recorded in
    `history` and reported as successful; read-only commands (inspect, info)
    still run so that the existence checks reflect the real host.
    """

    dry_run: bool = False
    history: List[List[str]] = field(default_factory=list)

    def run(self,
            command: Sequence[str],
            input_text: Optional[str] = None,
            check: bool = True,
            mutating: bool = True,
            redact: Sequence[str] = (),
            timeout: Optional[float] = None,
            capture: bool = True) -> CommandResult:
        """
        Runs a command and captures its output.

        :param command: Command and arguments to execute.
        :param input_text: Text passed on stdin (used for secrets and configs).
        :param check: Raise CommandError on a non-zero exit status.
        :param mutating: Whether the command changes host state.
        :param redact: Values masked when the command is logged.
        :param timeout: Seconds before the command is abandoned.
        :param capture: Capture output; when False the command shares the terminal.
        :return: The command result.
        :raises CommandError: If check is set and the command fails.
        """
        command = [str(part) for part in command]
        self.history.append(command)
        masked = self._mask(command, redact)
        shown = shlex.join(masked)

        if self.dry_run and mutating:
            logger.info("[dry-run] %s", shown)
            return CommandResult(command=command, returncode=0)

        logger.debug("Running: %s", shown)
        try:
            completed = subprocess.run(
                command,
                input=input_text,
                capture_output=capture,
                text=True,
                timeout=timeout,
                shell=False,
            )
        except FileNotFoundError:
            result = CommandResult(command=command, returncode=127,
                                   stderr=f"{command[0]}: command not found")
        else:
            result = CommandResult(command=command,
                                   returncode=completed.returncode,
                                   stdout=completed.stdout or "",
                                   stderr=completed.stderr or "")

        if not result.ok:
            logger.debug("Exit status %s from: %s", result.returncode, shown)
            if check:
                raise CommandError(masked, result.returncode, self._mask_text(result.stderr, redact))
        return result

    @staticmethod
    def _mask(command: List[str], redact: Sequence[str]) -> List[str]:
        """Masks sensitive values before a command is logged or reported."""
        return ["****" if part and part in redact else part for part in command]

    @staticmethod
    def _mask_text(text: str, redact: Sequence[str]) -> str:
        # Tools like mc echo their arguments back on failure.
        for value in redact:
            if value:
                text = text.replace(value, "****")
        return text
