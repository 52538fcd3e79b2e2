"""
Unit tests for MinIO readiness polling and bucket/user provisioning.
"""
import json

import pytest

from vpsstack.MANAGERS.minio_provisioner import BUCKET_ACTIONS, MinioProvisioner, bucket_policy


def make_provisioner(docker, timeout=0.2):
    return MinioProvisioner(docker, stack="minio", poll_interval=0, timeout=timeout)


def test_bucket_policy():
    policy = bucket_policy("evolution")
    statement = policy["Statement"][0]
    assert policy["Version"] == "2012-10-17"
    assert statement["Action"] == BUCKET_ACTIONS
    assert len(statement["Action"]) == 8
    assert statement["Resource"] == ["arn:aws:s3:::evolution", "arn:aws:s3:::evolution/*"]


def test_wait_until_ready_polls_logs(runner, docker):
    runner.script(["docker", "service", "logs"], stdout="API: http://10.0.1.5:9000\n")
    runner.script(["docker", "service", "logs"], stdout="starting...\n", times=2)
    make_provisioner(docker, timeout=5).wait_until_ready()
    assert len(runner.calls("docker", "service", "logs", "minio_minio")) == 3


def test_wait_until_ready_times_out(runner, docker):
    runner.script(["docker", "service", "logs"], stdout="")
    with pytest.raises(TimeoutError, match="minio_minio"):
        make_provisioner(docker).wait_until_ready()


def test_find_container_waits_for_task(runner, docker):
    runner.script(["docker", "service", "ps"], stdout="task9\n")
    runner.script(["docker", "service", "ps"], stdout="", times=1)
    runner.script(["docker", "inspect", "task9"], stdout="abc123\n")
    assert make_provisioner(docker, timeout=5).find_container() == "abc123"


def test_find_container_times_out(runner, docker):
    runner.script(["docker", "service", "ps"], stdout="")
    with pytest.raises(TimeoutError):
        make_provisioner(docker).find_container()


def test_provision_commands(runner, docker):
    container = make_provisioner(docker).provision(
        root_user="root",
        root_password="rootpass-0123456789",
        bucket="evolution",
        policy_name="evolution-api-policy",
        user="evolution-user",
        password="userpass-0123456789",
        container="abc123",
    )
    assert container == "abc123"
    mc = [c[c.index("mc"):] for c in runner.calls("docker", "exec")]
    assert mc == [
        ["mc", "alias", "set", "local", "http://127.0.0.1:9000", "root", "rootpass-0123456789"],
        ["mc", "mb", "--ignore-existing", "local/evolution"],
        ["mc", "admin", "policy", "create", "local", "evolution-api-policy", "/dev/stdin"],
        ["mc", "admin", "user", "add", "local", "evolution-user", "userpass-0123456789"],
        ["mc", "admin", "policy", "attach", "local", "evolution-api-policy", "--user", "evolution-user"],
    ]
    policy = json.loads(runner.input_for("docker", "exec", "-i"))
    assert policy == bucket_policy("evolution")


def test_provision_anonymous_download(runner, docker):
    make_provisioner(docker).provision("root", "p" * 20, "media", "media-policy", "app", "q" * 20,
                                       anonymous_download=True, container="abc123")
    assert runner.history[-1][-4:] == ["anonymous", "set", "download", "local/media"]


def test_provision_failure_propagates(runner, docker):
    from vpsstack.RUNNERS.command_runner import CommandError
    runner.script(["docker", "exec", "abc123", "mc", "admin", "user", "add"], returncode=1,
                  stderr="secret key too short")
    with pytest.raises(CommandError) as e:
        make_provisioner(docker).provision("root", "p" * 20, "b", "pol", "app", "short", container="abc123")
    assert e.value.returncode == 1
