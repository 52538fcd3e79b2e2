"""
Redis with the RedisInsight UI. Redis stays internal; RedisInsight is
published through Traefik behind basic authentication.
"""
from typing import Dict, List

from .base import Answers, Question, StackRecipe
from ..MODELS.stack_definition import DeployConfig, ServiceDefinition, StackDefinition, secret_path
from ..RUNNERS.command_runner import CommandRunner
from ..UTILS.credentials import basic_auth_users, generate_hex
from ..UTILS.traefik_labels import basic_auth_labels, router_labels

REDIS_VOLUME = "redis_data"
INSIGHT_VOLUME = "redisinsight_data"
SECRET_NAME = "redis_password"
AUTH_MIDDLEWARE = "redisinsight-auth"


class RedisRecipe(StackRecipe):
    name = "redis"
    description = "Redis database with the RedisInsight web UI"
    depends_on = ["traefik"]
    instructions_template = """
To check the running state: docker stack ps {{ stack }}

Access RedisInsight at: https://{{ redisinsight_domain }}
You will be prompted for the UI username and password you just created.

Inside RedisInsight, add a new Redis Database with these details:
  Host:     redis
  Port:     6379
  Password: [The Redis password you set or generated]
"""

    def questions(self) -> List[Question]:
        return [
            Question("redisinsight_domain", "Enter the domain for RedisInsight (e.g., redis.yourdomain.com)"),
            Question("redis_password",
                     "Enter the password for the Redis database (or press Enter to generate a secure one)",
                     secret=True, generator=generate_hex),
            Question("redisinsight_user", "Enter a username for the RedisInsight UI"),
            Question("redisinsight_password", "Enter a password for the RedisInsight UI", secret=True),
        ]

    def prepare(self, answers: Answers, runner: CommandRunner) -> None:
        answers["redisinsight_users"] = basic_auth_users(
            runner, answers["redisinsight_user"], answers["redisinsight_password"]
        )

    def volumes(self, answers: Answers) -> List[str]:
        return [REDIS_VOLUME, INSIGHT_VOLUME]

    def secrets(self, answers: Answers) -> Dict[str, str]:
        return {SECRET_NAME: answers["redis_password"]}

    def build(self, answers: Answers) -> StackDefinition:
        redis = ServiceDefinition(
            name="redis",
            image="redis:7-alpine",
            # The image has no _FILE convention; read the secret at start-up.
            command=["sh", "-c", f'exec redis-server --requirepass "$$(cat {secret_path(SECRET_NAME)})"'],
            networks=[self.network],
            volumes=[f"{REDIS_VOLUME}:/data"],
            secrets=[SECRET_NAME],
        )
        labels = router_labels(
            "redisinsight",
            answers["redisinsight_domain"],
            5540,
            network=self.network,
            middlewares=AUTH_MIDDLEWARE,
            resolver=self.settings.cert_resolver,
            entrypoint=self.settings.entrypoint,
        ) + basic_auth_labels(AUTH_MIDDLEWARE, answers["redisinsight_users"])
        insight = ServiceDefinition(
            name="redisinsight",
            image="redis/redisinsight:latest",
            networks=[self.network],
            volumes=[f"{INSIGHT_VOLUME}:/db"],
            deploy=DeployConfig(labels=labels),
        )
        return StackDefinition(
            name=self.name,
            services={"redis": redis, "redisinsight": insight},
            networks=[self.network],
            volumes=[REDIS_VOLUME, INSIGHT_VOLUME],
            secrets=[SECRET_NAME],
        )
