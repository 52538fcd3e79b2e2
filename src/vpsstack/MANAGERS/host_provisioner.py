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
Initial hardening of a fresh Ubuntu VPS: packages, swap, deploy user,
SSH, firewall, fail2ban, system policy and audit rules.
"""
import glob
import logging
import os
import re
from typing import Optional

import click

from .environment_manager import EnvironmentManager
from ..CONVERTERS import host_templates
from ..MODELS.settings import HostSettings
from ..PARSERS.env_parser import EnvParser
from ..RUNNERS.command_runner import CommandRunner

logger = logging.getLogger(__name__)

SWARM_PORTS = ["2377/tcp", "7946/tcp", "7946/udp", "4789/udp"]


def validate_ssh_key(value: str) -> Optional[str]:
    if not value.startswith("ssh-"):
        return "Invalid key format. It should start with 'ssh-'. Please try again."
    return None


class HostProvisioner:
    """
    Applies the root-level setup steps. Every file path is resolved under
    `root`, so the steps can run against a scratch directory.
    """
    def __init__(self,
                 runner: CommandRunner,
                 environment: EnvironmentManager,
                 settings: Optional[HostSettings] = None,
                 root: str = "/",
                 require_root: bool = True):
        """
        Initializes the host provisioner.

        :param runner: Runner for apt, ufw, systemctl and friends.
        :param environment: Source of the SSH public key.
        :param settings: User, SSH port, swap size and package list.
        :param root: Filesystem root that /etc, /home and /swapfile live under.
        :param require_root: Refuse to run unless the effective uid is 0.
        """
        self.runner = runner
        self.environment = environment
        self.settings = settings or HostSettings()
        self.root = root
        self.require_root = require_root

    def path(self, *parts: str) -> str:
        return os.path.join(self.root, *[p.lstrip("/") for p in parts])

    @property
    def dry_run(self) -> bool:
        return self.runner.dry_run

    # -- file helpers ---------------------------------------------------

    def _read(self, path: str) -> str:
        full = self.path(path)
        if not os.path.exists(full):
            return ""
        with open(full) as f:
            return f.read()

    def _write(self, path: str, content: str, mode: Optional[int] = None) -> None:
        full = self.path(path)
        if self.dry_run:
            logger.info("[dry-run] write %s", full)
            return
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "w") as f:
            f.write(content)
        if mode is not None:
            os.chmod(full, mode)

    def _append(self, path: str, content: str) -> None:
        current = self._read(path)
        if current and not current.endswith("\n"):
            current += "\n"
        self._write(path, current + content)

    def _ensure_line(self, path: str, line: str) -> bool:
        """Appends `line` unless it is already present. Returns True when appended."""
        if line in self._read(path).splitlines():
            return False
        self._append(path, line + "\n")
        return True

    def _substitute(self, path: str, pattern: str, replacement: str) -> None:
        content = self._read(path)
        updated = re.sub(pattern, replacement, content, flags=re.MULTILINE)
        if updated != content:
            self._write(path, updated)

    # -- steps ----------------------------------------------------------

    def check_root(self) -> None:
        if self.require_root and os.geteuid() != 0:
            raise PermissionError("This command must be run as root.")

    def detect_codename(self) -> str:
        """Reads VERSION_CODENAME from /etc/os-release, falling back to the configured codename."""
        os_release = self.path("/etc/os-release")
        if os.path.exists(os_release):
            codename = EnvParser.parse(os_release).get("VERSION_CODENAME")
            if codename:
                return codename
        return self.settings.ubuntu_codename

    def ask_ssh_key(self) -> str:
        click.echo("### User and SSH Key Setup ###")
        click.echo(f"This will create the user '{self.settings.new_user}'.")
        return self.environment.ask(
            "ssh_public_key",
            f"Please paste the public SSH key for the '{self.settings.new_user}' user now",
            validator=validate_ssh_key,
        )

    def ensure_security_repo(self, codename: str) -> None:
        click.echo("### Ensuring security repository is active... ###")
        pattern = re.compile(rf"^(deb .*|Suites:.*\s){re.escape(codename)}-security\b", re.MULTILINE)
        sources = [self.path("/etc/apt/sources.list")] + sorted(glob.glob(self.path("/etc/apt/sources.list.d/*")))
        for source in sources:
            if os.path.isfile(source):
                with open(source) as f:
                    if pattern.search(f.read()):
                        click.echo("Security repository is already configured.")
                        return
        click.echo("Security repository not found. Adding it now.")
        self._append(
            "/etc/apt/sources.list",
            f"deb http://security.ubuntu.com/ubuntu {codename}-security main restricted universe multiverse\n",
        )

    def install_packages(self) -> None:
        click.echo("### Updating system packages and installing prerequisites... ###")
        env = ["env", "DEBIAN_FRONTEND=noninteractive"]
        self.runner.run(env + ["apt-get", "update"])
        self.runner.run(env + ["apt-get", "upgrade", "-y"])
        self.runner.run(env + ["apt-get", "install", "-y"] + self.settings.packages)
        self.runner.run(env + ["apt-get", "autoremove", "-y"])
        click.echo("### System update complete. ###")

    def ensure_swap(self) -> None:
        click.echo(f"### Creating and enabling a {self.settings.swap_size} swap file... ###")
        swapfile = self.path("/swapfile")
        if os.path.exists(swapfile):
            click.echo("Swap file already exists. Skipping creation.")
            return
        self.runner.run(["fallocate", "-l", self.settings.swap_size, swapfile])
        self.runner.run(["chmod", "600", swapfile])
        self.runner.run(["mkswap", swapfile])
        self.runner.run(["swapon", swapfile])
        self._ensure_line("/etc/fstab", "/swapfile none swap sw 0 0")
        click.echo("Swap file created and enabled.")

    def tune_sysctl(self) -> None:
        changed = False
        for line in (f"vm.swappiness={self.settings.swappiness}", "vm.overcommit_memory=1"):
            changed = self._ensure_line("/etc/sysctl.conf", line) or changed
        if changed:
            self.runner.run(["sysctl", "-p"])

    def ensure_user(self) -> None:
        user = self.settings.new_user
        click.echo(f"### Creating new user '{user}' with sudo privileges... ###")
        if self.runner.run(["id", user], check=False, mutating=False).ok:
            click.echo(f"User {user} already exists. Skipping user creation.")
            return
        self.runner.run(["adduser", "--disabled-password", "--gecos", "", user])
        self.runner.run(["usermod", "-aG", "sudo", user])
        click.echo(f"User {user} created and added to the sudo group.")

    def install_ssh_key(self, public_key: str) -> None:
        user = self.settings.new_user
        click.echo(f"### Setting up SSH key authentication for {user}... ###")
        ssh_dir = f"/home/{user}/.ssh"
        self._write(f"{ssh_dir}/authorized_keys", public_key.strip() + "\n", mode=0o600)
        if not self.dry_run:
            os.chmod(self.path(ssh_dir), 0o700)
        self.runner.run(["chown", "-R", f"{user}:{user}", self.path(ssh_dir)])

    def harden_sshd(self) -> None:
        click.echo("### Hardening SSH configuration... ###")
        config = "/etc/ssh/sshd_config"
        self._substitute(config, r"^#?Port \d+$", f"Port {self.settings.ssh_port}")
        self._substitute(config, r"^#?PermitRootLogin .*$", "PermitRootLogin no")
        self._substitute(config, r"^#?PasswordAuthentication .*$", "PasswordAuthentication no")
        if host_templates.SSHD_MARKER not in self._read(config):
            self._append(config, host_templates.sshd_hardening())
        self.runner.run(["systemctl", "restart", "ssh.service"])

    def configure_firewall(self) -> None:
        click.echo("### Configuring UFW firewall... ###")
        self.runner.run(["ufw", "default", "deny", "incoming"])
        self.runner.run(["ufw", "default", "allow", "outgoing"])
        self.runner.run(["ufw", "limit", f"{self.settings.ssh_port}/tcp"])
        self.runner.run(["ufw", "allow", "http"])
        self.runner.run(["ufw", "allow", "https"])
        if self.settings.open_swarm_ports:
            for port in SWARM_PORTS:
                self.runner.run(["ufw", "allow", port])
        self.runner.run(["ufw", "--force", "enable"])

    def configure_fail2ban(self) -> None:
        click.echo("### Configuring Fail2ban... ###")
        if not os.path.exists(self.path("/etc/fail2ban/jail.local")):
            self._write("/etc/fail2ban/jail.local", self._read("/etc/fail2ban/jail.conf"))
        self._substitute("/etc/fail2ban/jail.local", r"^bantime\s*=\s*10m$", "bantime  = 1h")
        self._substitute("/etc/fail2ban/jail.local", r"^maxretry\s*=\s*5$", "maxretry = 3")
        self.runner.run(["systemctl", "enable", "fail2ban"])
        self.runner.run(["systemctl", "restart", "fail2ban"])

    def apply_system_policy(self) -> None:
        click.echo("### Applying system-wide policy and kernel hardening... ###")
        self._write("/etc/security/limits.d/99-disable-coredumps.conf", host_templates.DISABLE_COREDUMPS)
        login_defs = "/etc/login.defs"
        for key, value in (("UMASK", "027"), ("ENCRYPT_METHOD", "SHA512"), ("PASS_MAX_DAYS", "90"),
                           ("PASS_MIN_DAYS", "7"), ("PASS_WARN_AGE", "14")):
            self._substitute(login_defs, rf"^{key}\s+.*$", f"{key:<15} {value}")
        if "SHA_CRYPT_MIN_ROUNDS" not in self._read(login_defs):
            self._append(login_defs, "SHA_CRYPT_MIN_ROUNDS 500000\n")
        self._write("/etc/modprobe.d/99-disable-uncommon-net.conf", host_templates.uncommon_protocols())
        self._write("/etc/issue", host_templates.LEGAL_BANNER)
        self._write("/etc/issue.net", host_templates.LEGAL_BANNER)

    def configure_auditd(self) -> None:
        click.echo("### Configuring and loading auditd rules... ###")
        self._write("/etc/audit/rules.d/99-custom.rules", host_templates.audit_rules())
        self.runner.run(["augenrules", "--load"])
        self.runner.run(["service", "auditd", "restart"])

    def enable_unattended_upgrades(self) -> None:
        self._write("/etc/apt/apt.conf.d/20auto-upgrades", host_templates.AUTO_UPGRADES)

    def provision(self) -> None:
        """
        Runs every step in order.

        :raises PermissionError: If not running as root.
        :raises CommandError: If a command fails.
        """
        self.check_root()
        public_key = self.ask_ssh_key()
        codename = self.detect_codename()
        logger.debug("Ubuntu codename: %s", codename)

        self.ensure_security_repo(codename)
        self.install_packages()
        self.ensure_swap()
        self.tune_sysctl()
        self.ensure_user()
        self.install_ssh_key(public_key)
        self.harden_sshd()
        self.configure_firewall()
        self.configure_fail2ban()
        self.apply_system_policy()
        self.configure_auditd()
        self.enable_unattended_upgrades()

        click.echo("#" * 68)
        click.echo(f"###  {'ROOT SETUP COMPLETE!':<60}###")
        click.echo("#" * 68)
        click.echo(host_templates.final_instructions(self.settings.new_user, self.settings.ssh_port))
