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
Deployment of stack recipes: answers, Swarm resources, compose file,
`docker stack deploy` and final instructions.
"""
import logging
from typing import Dict, Iterable, List, Optional

import click
from tenacity import Retrying, RetryError, retry_if_result, stop_after_delay, wait_fixed

from .docker_client import DockerClient
from .environment_manager import EnvironmentManager
from .resource_manager import ResourceManager
from ..CONVERTERS.to_compose import ComposeConverter
from ..MODELS.settings import Settings
from ..RUNNERS.command_runner import CommandRunner
from ..RUNNERS.stack_order import StackOrderResolver
from ..STACKS.base import Answers, StackRecipe
from ..STACKS.registry import RECIPES, get_recipe

logger = logging.getLogger(__name__)

BANNER = "#" * 68


def banner(title: str) -> str:
    return f"{BANNER}\n###  {title:<60}###\n{BANNER}"


class StackDeployer:
    """
    Deploys stacks one at a time, or several in dependency order.
    """
    def __init__(self,
                 runner: CommandRunner,
                 environment: EnvironmentManager,
                 settings: Optional[Settings] = None,
                 render_only: bool = False,
                 reset_timeout: float = 60.0):
        """
        Initializes the deployer.

        :param runner: Runner for every external command.
        :param environment: Source of answers to recipe questions.
        :param settings: Shared names and the output directory.
        :param render_only: Only write compose files, never call Docker.
        :param reset_timeout: Seconds to wait for volumes to be released after `stack rm`.
        """
        self.runner = runner
        self.environment = environment
        self.settings = settings or Settings()
        self.render_only = render_only
        self.reset_timeout = reset_timeout
        self.docker = DockerClient(runner)
        self.resources = ResourceManager(self.docker)
        self.converter = ComposeConverter(self.settings.output_dir)
        self.resolver = StackOrderResolver()

    @property
    def dry_run(self) -> bool:
        return self.runner.dry_run

    def collect_answers(self, recipe: StackRecipe, known: Optional[Answers] = None) -> Answers:
        """
        Asks every question of a recipe and fills in generated values.

        :param recipe: The recipe.
        :param known: Answers already given for earlier stacks; their keys are not asked again.
        :return: Answers keyed by question key.
        """
        answers: Answers = {}
        known = known or {}
        click.echo(f"### {recipe.name.capitalize()} Configuration Setup ###")
        for q in recipe.questions():
            if q.key in known:
                logger.debug("Reusing answer for %s", q.key)
                answers[q.key] = known[q.key]
                continue
            default = q.default_from(answers) if q.default_from else q.default
            value = self.environment.ask(
                q.key, q.text, secret=q.secret, default=default,
                allow_blank=q.generator is not None, validator=q.validator,
            )
            if not value and q.generator is not None:
                value = q.generator()
                if q.secret:
                    click.echo(f"\n{BANNER}\nSAVE THIS! Generated value for '{q.key}':\n\n  {value}\n\n{BANNER}\n")
                else:
                    click.echo(f"Using {q.key.replace('_', ' ')}: {value}")
            answers[q.key] = value
        click.echo("-" * 52)
        return answers

    def reset(self, recipe: StackRecipe, answers: Answers) -> None:
        """
        Removes the stack and its volumes. Destroys the stack's data.
        """
        click.echo(f"### Removing stack '{recipe.name}' and its volumes... ###")
        self.docker.stack_rm(recipe.name)
        for volume in recipe.volumes(answers):
            if self.dry_run:
                self.docker.remove_volume(volume)
                continue
            retryer = Retrying(
                stop=stop_after_delay(self.reset_timeout),
                wait=wait_fixed(2),
                retry=retry_if_result(lambda removed: not removed),
            )
            try:
                retryer(self.docker.remove_volume, volume)
            except RetryError as e:
                raise TimeoutError(f"Volume '{volume}' is still in use after removing the stack") from e

    def deploy(self, recipe: StackRecipe, reset: bool = False, known: Optional[Answers] = None) -> str:
        """
        Runs the full setup of one stack.

        :param recipe: The recipe to deploy.
        :param reset: Remove the stack and its volumes first.
        :param known: Answers shared between stacks; updated with this stack's answers.
        :return: Path of the generated compose file.
        """
        use_docker = not self.render_only
        if use_docker and not self.dry_run:
            self.docker.require_available()

        answers = self.collect_answers(recipe, known)
        if known is not None:
            known.update(answers)
        recipe.prepare(answers, self.runner)

        if use_docker:
            if reset:
                self.reset(recipe, answers)
            click.echo("### Creating Docker managed volumes... ###")
            self.resources.ensure_volumes(recipe.volumes(answers))
            for name, value in recipe.secrets(answers).items():
                self.resources.replace_secret(name, value, stack=recipe.name)
            for name, content in recipe.configs(answers).items():
                self.resources.replace_config(name, content, stack=recipe.name)

        stack = recipe.build(answers)
        click.echo(f"### Creating Docker Compose file: {recipe.compose_file} ###")
        path = self.converter.convert(stack, recipe.compose_file)
        click.echo(f"Compose file created: {path}")

        if not use_docker:
            return path

        if not self.dry_run:
            recipe.before_deploy(answers, self.docker)
        click.echo(f"### Deploying stack '{recipe.name}' from '{path}'... ###")
        self.docker.stack_deploy(path, recipe.name)
        if not self.dry_run:
            recipe.after_deploy(answers, self.docker)

        click.echo(banner(f"{recipe.name.upper()} DEPLOYMENT COMPLETE!"))
        click.echo(recipe.instructions(answers))
        return path

    def deploy_many(self, names: Optional[Iterable[str]] = None, reset: bool = False) -> List[str]:
        """
        Deploys several stacks, each after the stacks it depends on.

        Answers carry over from one stack to the next, so a password generated
        for postgres is the one evolution connects with.

        :param names: Stacks to deploy, all when omitted.
        :param reset: Passed to every deployment.
        :return: Paths of the generated compose files.
        """
        dependencies: Dict[str, List[str]] = {name: cls.depends_on for name, cls in RECIPES.items()}
        order = self.resolver.resolve_order(dependencies, names)
        click.echo(f"Deploying stacks in order: {', '.join(order)}")
        known: Answers = {}
        return [self.deploy(get_recipe(name, self.settings), reset=reset, known=known) for name in order]
