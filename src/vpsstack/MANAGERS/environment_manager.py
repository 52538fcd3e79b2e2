"""
Resolution of answers to setup questions from the environment, an answers
file, or an interactive prompt.
"""
import os
from typing import Callable, Dict, List, Mapping, Optional

import click

from ..PARSERS.env_parser import EnvParser

Validator = Callable[[str], Optional[str]]


class MissingAnswerError(ValueError):
    """Raised when a question has no answer and prompting is disabled."""


class EnvironmentManager:
    """
    Looks answers up in this order: `VPSSTACK_<KEY>` environment variables,
    the answers file, then an interactive prompt.
    """
    PREFIX = "VPSSTACK_"

    def __init__(self,
                 answers_files: Optional[List[str]] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 interactive: bool = True):
        """
        Initializes the environment manager.

        :param answers_files: Paths to .env style answer files (later files override earlier ones).
        :param environ: Environment to read overrides from, defaults to os.environ.
        :param interactive: Prompt for answers that are not provided.
        """
        self.environ = dict(os.environ) if environ is None else dict(environ)
        self.interactive = interactive
        self.file_answers: Dict[str, str] = {}
        for path in answers_files or []:
            self.file_answers.update(EnvParser.parse(path))

    def lookup(self, key: str) -> Optional[str]:
        """
        Finds a preset answer without prompting.

        :param key: Question key, e.g. 'postgres_password'.
        :return: The answer or None.
        """
        name = key.upper()
        if self.PREFIX + name in self.environ:
            return self.environ[self.PREFIX + name]
        if name in self.file_answers:
            return self.file_answers[name]
        return None

    def ask(self,
            key: str,
            text: str,
            secret: bool = False,
            default: Optional[str] = None,
            allow_blank: bool = False,
            validator: Optional[Validator] = None) -> str:
        """
        Returns the answer to a question, prompting if needed.

        :param key: Question key.
        :param text: Prompt shown to the user.
        :param secret: Hide the typed input.
        :param default: Value used when the user just presses Enter.
        :param allow_blank: Accept an empty answer.
        :param validator: Returns an error message for invalid answers.
        :return: The answer.
        :raises MissingAnswerError: If no answer is available and prompting is disabled,
            or a preset answer is invalid.
        """
        preset = self.lookup(key)
        if preset is not None:
            error = validator(preset) if validator else None
            if error:
                raise MissingAnswerError(f"Invalid value for {self.PREFIX}{key.upper()}: {error}")
            return preset

        if not self.interactive:
            if default is not None or allow_blank:
                return default or ""
            raise MissingAnswerError(
                f"No answer for '{key}'. Set {self.PREFIX}{key.upper()} or add it to the answers file."
            )

        while True:
            if default is None and allow_blank:
                value = click.prompt(text, default="", show_default=False, hide_input=secret)
            elif default is None:
                value = click.prompt(text, hide_input=secret)
            else:
                value = click.prompt(text, default=default, hide_input=secret)
            error = validator(value) if validator else None
            if not error:
                return value
            click.echo(f"Error: {error}", err=True)
