"""
Models for Swarm stacks, translated to Docker Compose v3.8 documents.
"""
from typing import List, Dict, Optional, Any, Union
from pydantic import BaseModel, Field

COMPOSE_VERSION = "3.8"
MANAGER_CONSTRAINT = "node.role == manager"


class PortMapping(BaseModel):
    """
    A published port in long syntax.
    """
    target: int
    published: int
    mode: str = "ingress"

    def to_compose(self) -> Dict[str, Any]:
        return {"target": self.target, "published": self.published, "mode": self.mode}


class HealthCheck(BaseModel):
    """
    Defines a command to run to check the health of a service.
    """
    test: List[str]
    interval: str = "30s"
    timeout: str = "30s"
    retries: int = 3

    def to_compose(self) -> Dict[str, Any]:
        return {
            "test": list(self.test),
            "interval": self.interval,
            "timeout": self.timeout,
            "retries": self.retries,
        }


class ResourceLimits(BaseModel):
    """
    CPU and memory ceilings applied by Swarm.
    """
    cpus: Optional[str] = None
    memory: Optional[str] = None

    def to_compose(self) -> Dict[str, Any]:
        limits = {}
        if self.cpus is not None:
            limits["cpus"] = self.cpus
        if self.memory is not None:
            limits["memory"] = self.memory
        return {"limits": limits}


class DeployConfig(BaseModel):
    """
    The `deploy` section of a service: replication, placement, limits and labels.
    """
    mode: str = "replicated"
    replicas: int = 1
    constraints: List[str] = Field(default_factory=lambda: [MANAGER_CONSTRAINT])
    resources: Optional[ResourceLimits] = None
    labels: List[str] = []

    def to_compose(self) -> Dict[str, Any]:
        deploy: Dict[str, Any] = {"mode": self.mode, "replicas": self.replicas}
        if self.constraints:
            deploy["placement"] = {"constraints": list(self.constraints)}
        if self.resources is not None:
            deploy["resources"] = self.resources.to_compose()
        if self.labels:
            deploy["labels"] = list(self.labels)
        return deploy


class ConfigMount(BaseModel):
    """
    A Docker config mounted into a service at a target path.
    """
    source: str
    target: str


class ServiceDefinition(BaseModel):
    """
    A single service of a stack.
    """
    name: str
    image: str
    command: Optional[Union[str, List[str]]] = None
    environment: Dict[str, str] = {}
    ports: List[PortMapping] = []
    volumes: List[str] = []
    networks: List[str] = []
    secrets: List[str] = []
    configs: List[ConfigMount] = []
    healthcheck: Optional[HealthCheck] = None
    deploy: DeployConfig = Field(default_factory=DeployConfig)

    def to_compose(self) -> Dict[str, Any]:
        """
        Builds the Compose mapping for this service, omitting empty sections.

        :return: A dictionary ready to be dumped as YAML.
        """
        svc: Dict[str, Any] = {"image": self.image}
        if self.command is not None:
            svc["command"] = self.command if isinstance(self.command, str) else list(self.command)
        if self.environment:
            svc["environment"] = dict(self.environment)
        if self.ports:
            svc["ports"] = [p.to_compose() for p in self.ports]
        if self.volumes:
            svc["volumes"] = list(self.volumes)
        if self.networks:
            svc["networks"] = list(self.networks)
        if self.secrets:
            svc["secrets"] = list(self.secrets)
        if self.configs:
            svc["configs"] = [{"source": c.source, "target": c.target} for c in self.configs]
        if self.healthcheck is not None:
            svc["healthcheck"] = self.healthcheck.to_compose()
        svc["deploy"] = self.deploy.to_compose()
        return svc


class StackDefinition(BaseModel):
    """
    Complete definition of a stack deployed with `docker stack deploy`.
    Every network, volume, secret and config is managed outside the stack
    and therefore declared external.
    """
    name: str
    services: Dict[str, ServiceDefinition]
    networks: List[str] = []
    volumes: List[str] = []
    secrets: List[str] = []
    configs: List[str] = []

    def to_compose(self) -> Dict[str, Any]:
        """
        Builds the full Compose document.

        :return: A dictionary with version, services and the external resources.
        """
        doc: Dict[str, Any] = {
            "version": COMPOSE_VERSION,
            "services": {name: svc.to_compose() for name, svc in self.services.items()},
        }
        for section in ("networks", "volumes", "secrets", "configs"):
            names = getattr(self, section)
            if names:
                doc[section] = {name: {"external": True} for name in names}
        return doc


def secret_path(secret: str) -> str:
    """
    Path at which Swarm mounts a secret inside the containers.
    """
    return f"/run/secrets/{secret}"
