# -*- coding: utf-8 -*-
"""
Language table: maps a language identifier to the file name, image and
shell command used to run a submission.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from coderunner.config.settings import ExecutorConfig
from coderunner.utils.exceptions import UnsupportedLanguageError


@dataclass(frozen=True)
class ExecutionSpec:
    """How to run one language inside a container."""
    file_name: str
    image: str
    command: str


# Canonical id -> spec with the default image
_LANGUAGES: Dict[str, ExecutionSpec] = {
    # Compiled: build, then run
    "java": ExecutionSpec("Main.java", "eclipse-temurin:17-jdk", "javac Main.java && java Main"),
    "javascript": ExecutionSpec("main.js", "node:20-alpine", "node main.js"),
    # -u keeps stdout unbuffered so output streams as it is produced
    "python": ExecutionSpec("main.py", "python:3.12-alpine", "python -u main.py"),
}

_ALIASES: Dict[str, str] = {
    "java": "java",
    "js": "javascript",
    "javascript": "javascript",
    "node": "javascript",
    "python": "python",
    "py": "python",
}


class LanguageSpecFactory:
    """Resolves language identifiers. Stateless apart from image overrides."""

    def __init__(self, images: Optional[Dict[str, str]] = None):
        self._images = dict(ExecutorConfig.IMAGES if images is None else images)

    @staticmethod
    def supported_languages() -> List[str]:
        return list(_LANGUAGES)

    def get_spec(self, language: Optional[str]) -> ExecutionSpec:
        """
        Get the execution spec for a language.

        Args:
            language: Identifier such as ``python``, ``JS`` or ``java`` (case-insensitive)

        Returns:
            ExecutionSpec for the language

        Raises:
            UnsupportedLanguageError: For unknown or empty identifiers
        """
        canonical = _ALIASES.get((language or "").strip().lower())
        if canonical is None:
            raise UnsupportedLanguageError(language)

        spec = _LANGUAGES[canonical]
        image = self._images.get(canonical)
        if image and image != spec.image:
            return ExecutionSpec(spec.file_name, image, spec.command)
        return spec
