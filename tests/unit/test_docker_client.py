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
Unit tests for the Docker CLI wrapper and the resource manager.
"""
import pytest

from vpsstack.MANAGERS.docker_client import DockerClient, DockerUnavailableError
from vpsstack.MANAGERS.resource_manager import ResourceManager, SecretInUseError


class TestDockerClient:
    """Tests for DockerClient."""

    def test_require_available(self, runner, docker):
        runner.script(["docker", "info"], returncode=1, stderr="permission denied")
        with pytest.raises(DockerUnavailableError, match="Docker is not running"):
            docker.require_available()

    def test_sudo_prefix(self, runner):
        DockerClient(runner, use_sudo=True).volume_exists("x")
        assert runner.history == [["sudo", "docker", "volume", "inspect", "x"]]

    def test_swarm_state(self, runner, docker):
        runner.script(["docker", "info", "--format"], stdout="active\n")
        assert docker.swarm_state() == "active"

    def test_swarm_init_with_address(self, runner, docker):
        docker.swarm_init("203.0.113.7")
        assert runner.history[-1] == ["docker", "swarm", "init", "--advertise-addr", "203.0.113.7"]

    def test_join_command(self, runner, docker):
        runner.script(["docker", "swarm", "join-token"], stdout=(
            "To add a worker to this swarm, run the following command:\n\n"
            "    docker swarm join --token SWMTKN-1-abc 10.0.0.1:2377\n\n"
        ))
        assert docker.swarm_join_command() == "docker swarm join --token SWMTKN-1-abc 10.0.0.1:2377"

    def test_secret_value_goes_through_stdin(self, runner, docker):
        docker.create_secret("postgres_password", "s3cret")
        assert runner.history[-1] == ["docker", "secret", "create", "postgres_password", "-"]
        assert runner.inputs[-1] == "s3cret"

    def test_overlay_network(self, runner, docker):
        docker.create_overlay_network("main-proxy")
        assert runner.history[-1] == ["docker", "network", "create", "--driver=overlay", "--attachable", "main-proxy"]

    def test_stack_deploy(self, runner, docker):
        docker.stack_deploy("./minio.yml", "minio")
        assert runner.history[-1] == ["docker", "stack", "deploy", "-c", "./minio.yml", "minio"]

    def test_running_task_and_container(self, runner, docker):
        runner.script(["docker", "service", "ps"], stdout="task1\ntask2\n")
        runner.script(["docker", "inspect", "task1"], stdout="c0ffee\n")
        assert docker.running_task_id("minio_minio") == "task1"
        assert docker.task_container_id("task1") == "c0ffee"

    def test_no_running_task(self, runner, docker):
        runner.script(["docker", "service", "ps"], stdout="")
        assert docker.running_task_id("minio_minio") is None

    def test_exec_with_input(self, runner, docker):
        docker.exec("c0ffee", ["cat"], input_text="{}")
        assert runner.history[-1] == ["docker", "exec", "-i", "c0ffee", "cat"]


class TestResourceManager:
    """Tests for the idempotent resource helpers."""

    def test_existing_volume_is_kept(self, runner, docker):
        created = ResourceManager(docker).ensure_volume("postgres_data")
        assert created is False
        assert runner.calls("docker", "volume", "create") == []

    def test_missing_volume_is_created(self, runner, docker):
        runner.script(["docker", "volume", "inspect"], returncode=1)
        assert ResourceManager(docker).ensure_volume("postgres_data") is True
        assert runner.calls("docker", "volume", "create") == [["docker", "volume", "create", "postgres_data"]]

    def test_missing_network_is_created(self, runner, docker):
        runner.script(["docker", "network", "inspect"], returncode=1)
        assert ResourceManager(docker).ensure_network("main-proxy") is True

    def test_replace_existing_secret(self, runner, docker):
        ResourceManager(docker).replace_secret("redis_password", "new")
        assert [c[:3] for c in runner.history] == [
            ["docker", "secret", "inspect"],
            ["docker", "secret", "rm"],
            ["docker", "secret", "create"],
        ]

    def test_create_missing_secret(self, runner, docker):
        runner.script(["docker", "secret", "inspect"], returncode=1)
        ResourceManager(docker).replace_secret("redis_password", "new")
        assert runner.calls("docker", "secret", "rm") == []
        assert runner.input_for("docker", "secret", "create") == "new"

    def test_secret_in_use(self, runner, docker):
        runner.script(["docker", "secret", "rm"], returncode=1, stderr="secret is in use by service redis_redis")
        with pytest.raises(SecretInUseError, match="Remove that stack first") as e:
            ResourceManager(docker).replace_secret("redis_password", "new", stack="redis")
        assert "docker stack rm redis" in str(e.value)
        assert "in use by service redis_redis" in str(e.value)
        assert runner.calls("docker", "secret", "create") == []

    def test_config_in_use_names_stack(self, runner, docker):
        runner.script(["docker", "config", "rm"], returncode=1, stderr="config is in use")
        with pytest.raises(SecretInUseError) as e:
            ResourceManager(docker).replace_config("evolution_env", "A=1\n", stack="evolution")
        assert "docker stack rm evolution" in str(e.value)
        assert runner.calls("docker", "config", "create") == []

    def test_replace_config(self, runner, docker):
        runner.script(["docker", "config", "inspect"], returncode=1)
        ResourceManager(docker).replace_config("evolution_env", "A=1\n")
        assert runner.history[-1] == ["docker", "config", "create", "evolution_env", "-"]
        assert runner.inputs[-1] == "A=1\n"
