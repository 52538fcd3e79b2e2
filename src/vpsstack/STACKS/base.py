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
Base class for stack recipes: the questions a stack asks, the Swarm resources
it needs, the Compose document it deploys and the instructions printed after.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from jinja2 import Template

from ..MANAGERS.docker_client import DockerClient
from ..MODELS.settings import Settings
from ..MODELS.stack_definition import StackDefinition
from ..RUNNERS.command_runner import CommandRunner

Answers = Dict[str, str]


@dataclass
class Question:
    """
    One interactive input of a recipe.

    A question with a `generator` accepts a blank answer and replaces it with
    a generated value that is shown once to the user. `default_from` computes
    the default from the answers given so far.
    """

    key: str
    text: str
    secret: bool = False
    default: Optional[str] = None
    generator: Optional[Callable[[], str]] = None
    validator: Optional[Callable[[str], Optional[str]]] = None
    default_from: Optional[Callable[[Dict[str, str]], str]] = None


class StackRecipe:
    """
    Describes how one stack is set up and deployed.
    """
    name: str = ""
    description: str = ""
    depends_on: List[str] = []
    instructions_template: str = ""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initializes the recipe.

        :param settings: Shared names such as the proxy network and cert resolver.
        """
        self.settings = settings or Settings()

    @property
    def compose_file(self) -> str:
        return f"{self.name}.yml"

    @property
    def network(self) -> str:
        return self.settings.network_name

    def questions(self) -> List[Question]:
        return []

    def prepare(self, answers: Answers, runner: CommandRunner) -> None:
        """
        Derives extra values (hashes, versions) from the answers, in place.
        """

    def volumes(self, answers: Answers) -> List[str]:
        return []

    def secrets(self, answers: Answers) -> Dict[str, str]:
        """Secrets to (re)create, name to plaintext value."""
        return {}

    def configs(self, answers: Answers) -> Dict[str, str]:
        """Docker configs to (re)create, name to content."""
        return {}

    def before_deploy(self, answers: Answers, docker: DockerClient) -> None:
        """Runs after resources exist and before `docker stack deploy`."""

    def after_deploy(self, answers: Answers, docker: DockerClient) -> None:
        """Runs after `docker stack deploy` returned."""

    def build(self, answers: Answers) -> StackDefinition:
        raise NotImplementedError

    def instructions(self, answers: Answers) -> str:
        """
        Renders the text printed once the stack is deployed.
        """
        return Template(self.instructions_template).render(
            stack=self.name, network=self.network, **answers
        ).strip()
