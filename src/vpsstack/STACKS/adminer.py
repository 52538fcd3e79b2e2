"""
Adminer, a web UI for the PostgreSQL database.
"""
from typing import List

from .base import Answers, Question, StackRecipe
from ..MODELS.stack_definition import DeployConfig, ServiceDefinition, StackDefinition
from ..UTILS.traefik_labels import router_labels


class AdminerRecipe(StackRecipe):
    name = "adminer"
    description = "Web-based database UI"
    depends_on = ["traefik", "postgres"]
    instructions_template = """
Adminer is now running and accessible at: https://{{ adminer_domain }}

To log in to your database via Adminer:
  System:   PostgreSQL
  Server:   postgres  (This is the Docker service name)
  Username: postgres
  Password: [The password you set or generated for the postgres stack]
  Database: postgres
"""

    def questions(self) -> List[Question]:
        return [
            Question("adminer_domain", "Enter the domain for Adminer (e.g., db-admin.yourdomain.com)"),
        ]

    def build(self, answers: Answers) -> StackDefinition:
        adminer = ServiceDefinition(
            name="adminer",
            image="adminer",
            networks=[self.network],
            deploy=DeployConfig(labels=router_labels(
                "adminer",
                answers["adminer_domain"],
                8080,
                resolver=self.settings.cert_resolver,
                entrypoint=self.settings.entrypoint,
            )),
        )
        return StackDefinition(name=self.name, services={"adminer": adminer}, networks=[self.network])
