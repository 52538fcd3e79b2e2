"""
pgAdmin, the PostgreSQL management UI.
"""
from typing import Dict, List

from .base import Answers, Question, StackRecipe
from ..MODELS.stack_definition import (
    DeployConfig,
    ResourceLimits,
    ServiceDefinition,
    StackDefinition,
    secret_path,
)
from ..UTILS.traefik_labels import router_labels

DATA_VOLUME = "pgadmin_data"
SECRET_NAME = "pgadmin_default_password"


class PgAdminRecipe(StackRecipe):
    name = "pgadmin"
    description = "PostgreSQL management UI"
    depends_on = ["traefik", "postgres"]
    instructions_template = """
pgAdmin is now running and accessible at: https://{{ pgadmin_domain }}

Log in using the credentials you provided:
  Username: {{ pgadmin_email }}
  Password: [The password you set during setup]

To connect to your database, click 'Add New Server' and use:
  Host name/address: postgres
  Port:              5432
  Maintenance DB:    postgres
  Username:          postgres
  Password:          [The password of the postgres stack]
"""

    def questions(self) -> List[Question]:
        return [
            Question("pgadmin_domain", "Enter the domain for pgAdmin (e.g., pgadmin.yourdomain.com)"),
            Question("pgadmin_email", "Enter the default email for the pgAdmin login"),
            Question("pgadmin_password", "Enter the default password for the pgAdmin login", secret=True),
        ]

    def volumes(self, answers: Answers) -> List[str]:
        return [DATA_VOLUME]

    def secrets(self, answers: Answers) -> Dict[str, str]:
        return {SECRET_NAME: answers["pgadmin_password"]}

    def build(self, answers: Answers) -> StackDefinition:
        pgadmin = ServiceDefinition(
            name="pgadmin",
            image="elestio/pgadmin:latest",
            environment={
                "PGADMIN_DEFAULT_EMAIL": answers["pgadmin_email"],
                "PGADMIN_DEFAULT_PASSWORD_FILE": secret_path(SECRET_NAME),
                # Skips the master password prompt on first login.
                "PGADMIN_SETUP_MASTER_PASSWORD_FILE": secret_path(SECRET_NAME),
            },
            volumes=[f"{DATA_VOLUME}:/var/lib/pgadmin"],
            networks=[self.network],
            secrets=[SECRET_NAME],
            deploy=DeployConfig(
                resources=ResourceLimits(cpus="0.5", memory="1024M"),
                labels=router_labels(
                    "pgadmin",
                    answers["pgadmin_domain"],
                    80,
                    network=self.network,
                    resolver=self.settings.cert_resolver,
                    entrypoint=self.settings.entrypoint,
                ),
            ),
        )
        return StackDefinition(
            name=self.name,
            services={"pgadmin": pgadmin},
            networks=[self.network],
            volumes=[DATA_VOLUME],
            secrets=[SECRET_NAME],
        )
