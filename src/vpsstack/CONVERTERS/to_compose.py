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
Converters for writing stack definitions as Docker Compose files.
"""
import os
import yaml
from ..MODELS.stack_definition import StackDefinition


class ComposeConverter:
    """
    Writes a StackDefinition as a Compose v3.8 YAML file for `docker stack deploy`.
    """

    def __init__(self, output_dir: str = "."):
        """
        Initializes the compose converter.

        :param output_dir: The directory where compose files will be created.
        """
        self.output_dir = output_dir

    def render(self, stack: StackDefinition) -> str:
        """
        Renders the Compose document as YAML text.

        :param stack: The stack to render.
        :return: The YAML text, starting with a comment naming the file.
        """
        body = yaml.safe_dump(stack.to_compose(), sort_keys=False, default_flow_style=False,
                              allow_unicode=True, width=4096)
        return f"# {stack.name}.yml\n{body}"

    def convert(self, stack: StackDefinition, filename: str = "") -> str:
        """
        Generates the compose file, overwriting any previous one.

        :param stack: The stack to write.
        :param filename: File name inside the output directory, `<stack>.yml` by default.
        :return: The path to the written file.
        """
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, filename or f"{stack.name}.yml")
        with open(path, "w") as f:
            f.write(self.render(stack))
        return path
