"""
PostgreSQL 16 with pgvector, password held in a Swarm secret.
"""
from typing import Dict, List

from .base import Answers, Question, StackRecipe
from ..MODELS.stack_definition import (
    DeployConfig,
    HealthCheck,
    ResourceLimits,
    ServiceDefinition,
    StackDefinition,
    secret_path,
)
from ..UTILS.credentials import generate_base64

DATA_VOLUME = "postgres_data"
SECRET_NAME = "postgres_password"


class PostgresRecipe(StackRecipe):
    name = "postgres"
    description = "PostgreSQL database (pgvector), internal only"
    instructions_template = """
The PostgreSQL database is now running.
Other services on the '{{ network }}' network can connect to it using the hostname: 'postgres'
"""

    def questions(self) -> List[Question]:
        return [
            Question("postgres_password",
                     "Enter the password for the PostgreSQL database (or press Enter to generate a secure one)",
                     secret=True, generator=generate_base64),
        ]

    def volumes(self, answers: Answers) -> List[str]:
        return [DATA_VOLUME]

    def secrets(self, answers: Answers) -> Dict[str, str]:
        return {SECRET_NAME: answers["postgres_password"]}

    def build(self, answers: Answers) -> StackDefinition:
        postgres = ServiceDefinition(
            name="postgres",
            image="pgvector/pgvector:pg16",
            environment={
                "POSTGRES_PASSWORD_FILE": secret_path(SECRET_NAME),
                "TZ": self.settings.timezone,
            },
            networks=[self.network],
            healthcheck=HealthCheck(
                test=["CMD-SHELL", "pg_isready -U postgres"],
                interval="10s",
                timeout="5s",
                retries=10,
            ),
            volumes=[f"{DATA_VOLUME}:/var/lib/postgresql/data"],
            secrets=[SECRET_NAME],
            deploy=DeployConfig(resources=ResourceLimits(cpus="1", memory="4096M")),
        )
        return StackDefinition(
            name=self.name,
            services={"postgres": postgres},
            networks=[self.network],
            volumes=[DATA_VOLUME],
            secrets=[SECRET_NAME],
        )
