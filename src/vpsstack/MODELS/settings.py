"""
Models for shared deployment settings and host provisioning defaults.
"""
from typing import List
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """
    Names shared by every stack and the location of generated files.
    """
    network_name: str = "main-proxy"
    cert_resolver: str = "myresolver"
    entrypoint: str = "websecure"
    output_dir: str = "."
    timezone: str = "America/Sao_Paulo"


class HostSettings(BaseModel):
    """
    Defaults for the root-level host hardening run.
    """
    new_user: str = "deploy"
    ssh_port: int = 2222
    swap_size: str = "4G"
    swappiness: int = 10
    ubuntu_codename: str = "noble"
    open_swarm_ports: bool = True
    packages: List[str] = Field(default_factory=lambda: [
        "ufw", "fail2ban", "auditd", "audispd-plugins", "sysstat", "rkhunter",
        "lynis", "debsums", "apt-listbugs", "apt-listchanges", "curl", "jq",
        "openssl", "unattended-upgrades",
    ])


class DockerSettings(BaseModel):
    """
    Shared Swarm resources created once after Docker is installed.
    """
    network_name: str = "main-proxy"
    shared_volumes: List[str] = Field(default_factory=lambda: ["traefik-acme", "traefik-logs"])
    advertise_addr: str = ""
