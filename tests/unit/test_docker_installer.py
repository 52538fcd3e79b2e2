"""
Unit tests for Docker installation and Swarm bootstrap.
"""
import os
import socket
from collections import namedtuple

import pytest

from vpsstack.MANAGERS import docker_installer
from vpsstack.MANAGERS.docker_installer import DockerInstaller
from vpsstack.MODELS.settings import DockerSettings

Addr = namedtuple("Addr", "family address")


@pytest.fixture
def in_group(monkeypatch):
    monkeypatch.setattr(docker_installer, "in_docker_group", lambda: True)


def make_installer(runner, **settings):
    return DockerInstaller(runner, DockerSettings(**settings), user="deploy", require_non_root=False)


def test_refuses_root(runner, monkeypatch):
    monkeypatch.setattr(os, "geteuid", lambda: 0)
    with pytest.raises(PermissionError):
        DockerInstaller(runner, user="deploy").setup()
    assert runner.history == []


def test_sets_password_when_sudo_not_cached(runner, in_group):
    runner.script(["sudo", "-n", "true"], returncode=1)
    make_installer(runner).ensure_sudo()
    assert runner.calls("sudo", "passwd") == [["sudo", "passwd", "deploy"]]


def test_full_setup(runner, in_group):
    runner.script(["docker", "info", "--format"], stdout="inactive\n")
    runner.script(["docker", "network", "inspect"], returncode=1)
    runner.script(["docker", "volume", "inspect"], returncode=1)
    runner.script(["docker", "swarm", "join-token"], stdout="    docker swarm join --token T 10.0.0.1:2377\n")

    make_installer(runner, advertise_addr="203.0.113.10").setup()

    assert runner.calls("sudo", "passwd") == []
    assert ["sudo", "apt-get", "install", "-y", "docker.io"] in runner.history
    assert ["sudo", "usermod", "-aG", "docker", "deploy"] in runner.history
    assert ["docker", "swarm", "init", "--advertise-addr", "203.0.113.10"] in runner.history
    assert ["docker", "network", "create", "--driver=overlay", "--attachable", "main-proxy"] in runner.history
    assert runner.calls("docker", "volume", "create") == [
        ["docker", "volume", "create", "traefik-acme"],
        ["docker", "volume", "create", "traefik-logs"],
    ]


def test_active_swarm_is_kept(runner, in_group):
    runner.script(["docker", "info", "--format"], stdout="active\n")
    make_installer(runner).init_swarm(make_installer(runner).docker_client())
    assert runner.calls("docker", "swarm", "init") == []


def test_sudo_used_outside_docker_group(runner, monkeypatch):
    monkeypatch.setattr(docker_installer, "in_docker_group", lambda: False)
    make_installer(runner).docker_client().volume_exists("traefik-acme")
    assert runner.history[-1][:2] == ["sudo", "docker"]


def test_advertise_addr_detection(runner, monkeypatch):
    monkeypatch.setattr(docker_installer.psutil, "net_if_addrs", lambda: {
        "lo": [Addr(socket.AF_INET, "127.0.0.1")],
        "docker0": [Addr(socket.AF_INET, "172.17.0.1")],
        "eth0": [Addr(socket.AF_INET, "203.0.113.5"), Addr(socket.AF_INET6, "fe80::1")],
    })
    assert make_installer(runner).advertise_addr() == "203.0.113.5"


def test_advertise_addr_ambiguous(runner, monkeypatch):
    monkeypatch.setattr(docker_installer.psutil, "net_if_addrs", lambda: {
        "eth0": [Addr(socket.AF_INET, "203.0.113.5")],
        "eth1": [Addr(socket.AF_INET, "10.0.0.5")],
    })
    assert make_installer(runner).advertise_addr() is None
