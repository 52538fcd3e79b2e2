"""
MinIO object storage with separate routers for the S3 API and the console.
"""
from typing import Dict, List

from .base import Answers, Question, StackRecipe
from ..MANAGERS.docker_client import DockerClient
from ..MANAGERS.minio_provisioner import MinioProvisioner
from ..MODELS.stack_definition import DeployConfig, ServiceDefinition, StackDefinition, secret_path
from ..UTILS.credentials import generate_hex
from ..UTILS.traefik_labels import router_labels

DATA_VOLUME = "minio_data"
SECRET_NAME = "minio_root_password"


class MinioRecipe(StackRecipe):
    name = "minio"
    description = "S3 compatible object storage"
    depends_on = ["traefik"]
    instructions_template = """
MinIO is running.
  Console: https://{{ minio_console_domain }}
  S3 API:  https://{{ minio_api_domain }}
  Root user: {{ minio_root_user }}

Create application users with: vpsstack minio provision
"""

    def __init__(self, settings=None, ready_timeout: float = 300.0):
        super().__init__(settings)
        self.ready_timeout = ready_timeout

    def questions(self) -> List[Question]:
        return [
            Question("minio_console_domain", "Enter domain for MinIO Console (e.g., s3.yourdomain.com)"),
            Question("minio_api_domain", "Enter domain for MinIO API (e.g., s3api.yourdomain.com)"),
            Question("minio_root_user", "Enter the MinIO ROOT username", default="root"),
            Question("minio_root_password",
                     "Enter the MinIO ROOT password (or press Enter to generate one)",
                     secret=True, generator=generate_hex),
        ]

    def volumes(self, answers: Answers) -> List[str]:
        return [DATA_VOLUME]

    def secrets(self, answers: Answers) -> Dict[str, str]:
        return {SECRET_NAME: answers["minio_root_password"]}

    def after_deploy(self, answers: Answers, docker: DockerClient) -> None:
        MinioProvisioner(docker, stack=self.name, timeout=self.ready_timeout).wait_until_ready()

    def build(self, answers: Answers) -> StackDefinition:
        common = dict(resolver=self.settings.cert_resolver, entrypoint=self.settings.entrypoint)
        labels = router_labels("minio-api", answers["minio_api_domain"], 9000, **common)
        labels += router_labels("minio-console", answers["minio_console_domain"], 9001,
                                enable=False, **common)
        minio = ServiceDefinition(
            name="minio",
            image="minio/minio:latest",
            command='server /data --console-address ":9001"',
            environment={
                "MINIO_ROOT_USER": answers["minio_root_user"],
                "MINIO_ROOT_PASSWORD_FILE": secret_path(SECRET_NAME),
            },
            volumes=[f"{DATA_VOLUME}:/data"],
            networks=[self.network],
            secrets=[SECRET_NAME],
            deploy=DeployConfig(labels=labels),
        )
        return StackDefinition(
            name=self.name,
            services={"minio": minio},
            networks=[self.network],
            volumes=[DATA_VOLUME],
            secrets=[SECRET_NAME],
        )
