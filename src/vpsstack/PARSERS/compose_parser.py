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
Parsers for Swarm stack compose files.
"""
import os
from typing import Any, Dict, List

import yaml

from ..MODELS.stack_definition import (
    ConfigMount,
    DeployConfig,
    HealthCheck,
    PortMapping,
    ResourceLimits,
    ServiceDefinition,
    StackDefinition,
)


class ComposeParser:
    """
    Reads a compose file back into a StackDefinition.
    """
    def parse(self, compose_path: str) -> StackDefinition:
        """
        Parses a compose file from a path. The stack is named after the file.

        :param compose_path: Path to the compose file.
        :return: Parsed stack.
        """
        with open(compose_path, 'r') as f:
            content = f.read()
        name = os.path.splitext(os.path.basename(compose_path))[0]
        return self.parse_from_string(content, name)

    def parse_from_string(self, content: str, name: str = "stack") -> StackDefinition:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :param name: Stack name.
        :return: Parsed stack.
        :raises ValueError: If the document is not a mapping.
        """
        data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ValueError("Compose file must contain a mapping at the top level")

        services = {
            svc_name: self._parse_service(svc_name, spec or {})
            for svc_name, spec in (data.get('services') or {}).items()
        }
        return StackDefinition(
            name=name,
            services=services,
            networks=self._keys(data.get('networks')),
            volumes=self._keys(data.get('volumes')),
            secrets=self._keys(data.get('secrets')),
            configs=self._keys(data.get('configs')),
        )

    def _parse_service(self, name: str, spec: Dict[str, Any]) -> ServiceDefinition:
        """
        Parses a single service definition from a compose file.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :return: A ServiceDefinition instance.
        """
        # Ports, long syntax as generated, short syntax as written by hand
        ports = []
        for p in spec.get('ports', []):
            if isinstance(p, dict):
                ports.append(PortMapping(target=p['target'], published=p.get('published', p['target']),
                                         mode=p.get('mode', 'ingress')))
            else:
                parts = str(p).split(':')
                ports.append(PortMapping(target=int(parts[-1]), published=int(parts[0])))

        # Environment
        environment = {}
        env_spec = spec.get('environment', {})
        if isinstance(env_spec, list):
            for e in env_spec:
                if '=' in e:
                    k, v = e.split('=', 1)
                    environment[k] = v
        elif isinstance(env_spec, dict):
            environment = {k: "" if v is None else str(v) for k, v in env_spec.items()}

        healthcheck = None
        if spec.get('healthcheck'):
            hc = spec['healthcheck']
            healthcheck = HealthCheck(test=self._to_list(hc.get('test')),
                                      interval=hc.get('interval', '30s'),
                                      timeout=hc.get('timeout', '30s'),
                                      retries=hc.get('retries', 3))

        return ServiceDefinition(
            name=name,
            image=spec.get('image', ''),
            command=spec.get('command'),
            environment=environment,
            ports=ports,
            volumes=[str(v) for v in spec.get('volumes', [])],
            networks=self._keys(spec.get('networks')),
            secrets=[s if isinstance(s, str) else s['source'] for s in spec.get('secrets', [])],
            configs=[ConfigMount(source=c['source'], target=c.get('target', f"/{c['source']}"))
                     for c in spec.get('configs', [])],
            healthcheck=healthcheck,
            deploy=self._parse_deploy(spec.get('deploy') or {}),
        )

    def _parse_deploy(self, deploy: Dict[str, Any]) -> DeployConfig:
        limits = (deploy.get('resources') or {}).get('limits')
        resources = None
        if limits:
            resources = ResourceLimits(cpus=limits.get('cpus'), memory=limits.get('memory'))
        labels = deploy.get('labels') or []
        if isinstance(labels, dict):
            labels = [f"{k}={v}" for k, v in labels.items()]
        return DeployConfig(
            mode=deploy.get('mode', 'replicated'),
            replicas=deploy.get('replicas', 1),
            constraints=(deploy.get('placement') or {}).get('constraints', []),
            resources=resources,
            labels=labels,
        )

    def _keys(self, val: Any) -> List[str]:
        """
        Names declared by a section given either as a mapping or a list.
        """
        if not val:
            return []
        return list(val.keys()) if isinstance(val, dict) else list(val)

    def _to_list(self, val: Any) -> List[str]:
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return list(val)
