"""
Traefik reverse proxy: TLS via Let's Encrypt, Swarm label provider and a
password protected dashboard.
"""
from typing import List

from .base import Answers, Question, StackRecipe
from ..MODELS.stack_definition import (
    DeployConfig,
    PortMapping,
    ServiceDefinition,
    StackDefinition,
)
from ..RUNNERS.command_runner import CommandRunner
from ..UTILS.credentials import basic_auth_users
from ..UTILS.release_lookup import latest_traefik_version
from ..UTILS.traefik_labels import basic_auth_labels

ACME_VOLUME = "traefik-acme"
LOG_VOLUME = "traefik-logs"


class TraefikRecipe(StackRecipe):
    name = "traefik"
    description = "Reverse proxy with automatic HTTPS and dashboard"
    instructions_template = """
It may take a minute for the service to be available.
You can check the status with the command: docker stack ps {{ stack }}
Logs are written inside the '{{ log_volume }}' volume, for example:
  docker exec $(docker ps -q --filter 'name={{ stack }}_traefik') cat /var/log/traefik/traefik.log

Make sure '{{ traefik_domain }}' points to this server, then open the dashboard at:
https://{{ traefik_domain }}
"""

    def questions(self) -> List[Question]:
        return [
            Question("traefik_domain", "Enter the domain for the Traefik dashboard (e.g., traefik.yourdomain.com)"),
            Question("letsencrypt_email", "Enter your email address (for Let's Encrypt SSL certificates)"),
            Question("dashboard_user", "Enter a username for the Traefik dashboard"),
            Question("dashboard_password", "Enter a password for the dashboard", secret=True),
            Question("traefik_version", "Traefik version (press Enter for the latest stable release)",
                     generator=latest_traefik_version),
        ]

    def prepare(self, answers: Answers, runner: CommandRunner) -> None:
        answers["log_volume"] = LOG_VOLUME
        answers["dashboard_users"] = basic_auth_users(
            runner, answers["dashboard_user"], answers["dashboard_password"]
        )

    def volumes(self, answers: Answers) -> List[str]:
        return [ACME_VOLUME, LOG_VOLUME]

    def build(self, answers: Answers) -> StackDefinition:
        resolver = self.settings.cert_resolver
        command = [
            "--api.dashboard=true",
            "--providers.swarm=true",
            "--providers.swarm.exposedByDefault=false",
            "--entrypoints.web.address=:80",
            f"--entrypoints.web.http.redirections.entrypoint.to={self.settings.entrypoint}",
            "--entrypoints.web.http.redirections.entrypoint.scheme=https",
            f"--entrypoints.{self.settings.entrypoint}.address=:443",
            f"--certificatesresolvers.{resolver}.acme.email={answers['letsencrypt_email']}",
            f"--certificatesresolvers.{resolver}.acme.storage=/etc/traefik/acme/acme.json",
            f"--certificatesresolvers.{resolver}.acme.httpchallenge=true",
            f"--certificatesresolvers.{resolver}.acme.httpchallenge.entrypoint=web",
            "--log.level=DEBUG",
            "--log.filePath=/var/log/traefik/traefik.log",
            "--accesslog=true",
            "--accesslog.filepath=/var/log/traefik/access.log",
        ]
        # The Swarm provider rejects services without a port, even api@internal.
        labels = [
            "traefik.enable=true",
            "traefik.http.services.traefik.loadbalancer.server.port=8080",
            "traefik.http.routers.dashboard.service=api@internal",
            f"traefik.http.routers.dashboard.rule=Host(`{answers['traefik_domain']}`)",
            f"traefik.http.routers.dashboard.entrypoints={self.settings.entrypoint}",
            "traefik.http.routers.dashboard.tls=true",
            f"traefik.http.routers.dashboard.tls.certresolver={resolver}",
            "traefik.http.routers.dashboard.middlewares=auth",
        ] + basic_auth_labels("auth", answers["dashboard_users"])

        traefik = ServiceDefinition(
            name="traefik",
            image=f"traefik:{answers['traefik_version']}",
            ports=[
                PortMapping(target=80, published=80, mode="host"),
                PortMapping(target=443, published=443, mode="host"),
            ],
            volumes=[
                "/var/run/docker.sock:/var/run/docker.sock:ro",
                f"{ACME_VOLUME}:/etc/traefik/acme",
                f"{LOG_VOLUME}:/var/log/traefik",
            ],
            networks=[self.network],
            command=command,
            deploy=DeployConfig(labels=labels),
        )
        return StackDefinition(
            name=self.name,
            services={"traefik": traefik},
            networks=[self.network],
            volumes=[ACME_VOLUME, LOG_VOLUME],
        )
