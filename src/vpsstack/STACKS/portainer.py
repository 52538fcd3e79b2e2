"""
Portainer CE, the Swarm management UI.
"""
from typing import List

from .base import Answers, Question, StackRecipe
from ..MODELS.stack_definition import DeployConfig, ServiceDefinition, StackDefinition
from ..UTILS.traefik_labels import router_labels

DATA_VOLUME = "portainer_data"


class PortainerRecipe(StackRecipe):
    name = "portainer"
    description = "Docker management UI"
    depends_on = ["traefik"]
    instructions_template = """
It may take a minute for the service to be available.
You can check the status with the command: docker stack ps {{ stack }}

Once running, access Portainer at:
https://{{ portainer_domain }}
"""

    def questions(self) -> List[Question]:
        return [
            Question("portainer_domain", "Enter the domain for Portainer (e.g., portainer.yourdomain.com)"),
        ]

    def volumes(self, answers: Answers) -> List[str]:
        return [DATA_VOLUME]

    def build(self, answers: Answers) -> StackDefinition:
        labels = router_labels(
            "portainer",
            answers["portainer_domain"],
            9000,
            resolver=self.settings.cert_resolver,
            entrypoint=self.settings.entrypoint,
        )
        portainer = ServiceDefinition(
            name="portainer",
            image="portainer/portainer-ce:latest",
            volumes=[
                f"{DATA_VOLUME}:/data",
                "/var/run/docker.sock:/var/run/docker.sock",
            ],
            networks=[self.network],
            deploy=DeployConfig(labels=labels),
        )
        return StackDefinition(
            name=self.name,
            services={"portainer": portainer},
            networks=[self.network],
            volumes=[DATA_VOLUME],
        )
