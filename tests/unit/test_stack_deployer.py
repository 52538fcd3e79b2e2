"""
Unit tests for the stack deployment flow.
"""
import os

import pytest

from vpsstack.MANAGERS.docker_client import DockerUnavailableError
from vpsstack.MANAGERS.stack_deployer import StackDeployer
from vpsstack.MODELS.settings import Settings
from vpsstack.STACKS.registry import get_recipe


def make_deployer(runner, make_env, tmp_path, render_only=False, **answers):
    return StackDeployer(runner, make_env(**answers), Settings(output_dir=str(tmp_path)),
                         render_only=render_only, reset_timeout=1)


def test_postgres_full_flow(runner, make_env, tmp_path):
    runner.script(["docker", "volume", "inspect"], returncode=1)
    runner.script(["docker", "secret", "inspect"], returncode=1)
    deployer = make_deployer(runner, make_env, tmp_path, postgres_password="pw")

    path = deployer.deploy(get_recipe("postgres"))

    assert path == os.path.join(str(tmp_path), "postgres.yml")
    assert os.path.exists(path)
    steps = [c[1:3] for c in runner.history]
    assert steps == [
        ["info"],
        ["volume", "inspect"],
        ["volume", "create"],
        ["secret", "inspect"],
        ["secret", "create"],
        ["stack", "deploy"],
    ]
    assert runner.history[-1] == ["docker", "stack", "deploy", "-c", path, "postgres"]
    assert runner.input_for("docker", "secret", "create") == "pw"


def test_generated_secret_is_shown_once(runner, make_env, tmp_path, capsys):
    deployer = make_deployer(runner, make_env, tmp_path)
    deployer.deploy(get_recipe("postgres"))
    out = capsys.readouterr().out
    assert out.count("SAVE THIS!") == 1
    generated = runner.input_for("docker", "secret", "create")
    assert generated and generated in out


def test_docker_unavailable_stops_before_anything(runner, make_env, tmp_path):
    runner.script(["docker", "info"], returncode=1)
    deployer = make_deployer(runner, make_env, tmp_path, postgres_password="pw")
    with pytest.raises(DockerUnavailableError):
        deployer.deploy(get_recipe("postgres"))
    assert runner.history == [["docker", "info"]]
    assert not os.path.exists(tmp_path / "postgres.yml")


def test_render_only_never_calls_docker(runner, make_env, tmp_path):
    deployer = make_deployer(runner, make_env, tmp_path, render_only=True, adminer_domain="db.example.com")
    path = deployer.deploy(get_recipe("adminer"))
    assert runner.history == []
    assert "db.example.com" in open(path).read()


def test_dry_run_records_without_waiting(dry_runner, make_env, tmp_path):
    runner = dry_runner
    deployer = make_deployer(runner, make_env, tmp_path, minio_console_domain="s3.example.com",
                             minio_api_domain="s3-api.example.com", minio_root_password="x" * 32)
    deployer.deploy(get_recipe("minio"))
    assert ["docker", "stack", "deploy", "-c", os.path.join(str(tmp_path), "minio.yml"), "minio"] in runner.history
    assert runner.calls("docker", "info") == []
    assert runner.calls("docker", "service", "logs") == []


def test_minio_waits_for_ready(runner, make_env, tmp_path):
    runner.script(["docker", "service", "logs"], stdout="API: http://127.0.0.1:9000\n")
    deployer = make_deployer(runner, make_env, tmp_path, minio_console_domain="s3.example.com",
                             minio_api_domain="s3-api.example.com", minio_root_password="x" * 32)
    deployer.deploy(get_recipe("minio"))
    assert runner.history[-1] == ["docker", "service", "logs", "minio_minio"]


def test_reset_removes_stack_and_volumes(runner, make_env, tmp_path):
    runner.script(["docker", "volume", "rm"], returncode=0)
    runner.script(["docker", "volume", "rm"], returncode=1, stderr="volume is in use", times=1)
    deployer = make_deployer(runner, make_env, tmp_path, postgres_password="pw")
    deployer.deploy(get_recipe("postgres"), reset=True)
    assert runner.calls("docker", "stack", "rm") == [["docker", "stack", "rm", "postgres"]]
    assert len(runner.calls("docker", "volume", "rm")) == 2


def test_evolution_config_and_provisioning(runner, make_env, tmp_path):
    runner.script(["docker", "service", "ps"], stdout="t1\n")
    runner.script(["docker", "inspect", "t1"], stdout="cid\n")
    deployer = make_deployer(
        runner, make_env, tmp_path,
        api_domain="whatsapp-api.example.com", api_key="k" * 64, postgres_password="pg",
        redis_password="rd", minio_root_password="m" * 64, evolution_minio_password="e" * 20,
    )
    deployer.deploy(get_recipe("evolution"))

    env = runner.input_for("docker", "config", "create")
    assert "DATABASE_CONNECTION_URI=postgresql://postgres:pg@postgres:5432/evolution" in env
    deploy_index = runner.history.index(runner.calls("docker", "stack", "deploy")[0])
    attach_index = runner.history.index(runner.calls("docker", "exec", "cid", "mc", "admin", "policy", "attach")[0])
    assert attach_index < deploy_index
    compose = open(tmp_path / "evolution.yml").read()
    assert "S3_ENDPOINT: s3-api.example.com" in compose


def test_deploy_many_in_order(runner, make_env, tmp_path):
    deployer = make_deployer(runner, make_env, tmp_path, render_only=True,
                             postgres_password="pw", adminer_domain="db.example.com")
    paths = deployer.deploy_many(["adminer", "postgres"])
    assert [os.path.basename(p) for p in paths] == ["postgres.yml", "adminer.yml"]


def test_deploy_many_reuses_generated_answers(runner, make_env, tmp_path, capsys):
    runner.script(["docker", "service", "logs"], stdout="API: http://127.0.0.1:9000\n")
    runner.script(["docker", "service", "ps"], stdout="t1\n")
    runner.script(["docker", "inspect", "t1"], stdout="cid\n")
    deployer = make_deployer(
        runner, make_env, tmp_path,
        traefik_domain="traefik.example.com", letsencrypt_email="me@example.com",
        dashboard_user="admin", dashboard_password="dash", traefik_version="v3.1",
        redisinsight_domain="redis.example.com", redisinsight_user="ui", redisinsight_password="uipw",
        minio_console_domain="s3.example.com", minio_api_domain="s3-api.example.com",
        api_domain="whatsapp-api.example.com",
    )

    paths = deployer.deploy_many(["evolution", "postgres", "redis", "minio", "traefik"])

    assert os.path.basename(paths[-1]) == "evolution.yml"
    postgres_password = runner.input_for("docker", "secret", "create", "postgres_password")
    redis_password = runner.input_for("docker", "secret", "create", "redis_password")
    minio_password = runner.input_for("docker", "secret", "create", "minio_root_password")
    env = runner.input_for("docker", "config", "create", "evolution_env")
    assert postgres_password and redis_password and minio_password
    assert f"redis://:{redis_password}@redis:6379/1" in env
    alias = runner.calls("docker", "exec", "cid", "mc", "alias", "set")[0]
    assert alias[-2:] == ["root", minio_password]

    out = capsys.readouterr().out
    for key in ("postgres_password", "redis_password", "minio_root_password"):
        assert out.count(f"Generated value for '{key}'") == 1
