"""
Parsers for .env style files: answer files and the Evolution API env config.
"""
import io
from typing import Dict, Mapping

from dotenv import dotenv_values


class EnvParser:
    """
    Reads and writes KEY=VALUE files.
    """
    @staticmethod
    def parse(env_path: str) -> Dict[str, str]:
        """
        Parses an .env file from a path.

        Args:
            env_path (str): Path to the .env file.

        Returns:
            Dict[str, str]: Dictionary of variables; keys without a value are dropped.
        """
        with open(env_path, 'r') as f:
            return EnvParser.parse_from_string(f.read())

    @staticmethod
    def parse_from_string(content: str) -> Dict[str, str]:
        """
        Parses variables from a string. Handles quotes, comments and `export`.
        """
        values = dotenv_values(stream=io.StringIO(content))
        return {k: v for k, v in values.items() if v is not None}

    @staticmethod
    def render(values: Mapping[str, str]) -> str:
        """
        Renders variables as unquoted KEY=VALUE lines, in insertion order.
        """
        return "".join(f"{key}={value}\n" for key, value in values.items())
