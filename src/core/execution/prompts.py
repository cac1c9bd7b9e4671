# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Prompt templates for ``prompt_based`` capabilities.

Templates live as YAML files under ``src/core/execution/prompt_templates/``, one
prompt per file:

    id: parent_letter
    systemPrompt: ...
    template: |
      כתוב מכתב להורים בנושא {subject}...
    temperature: 0.7
    maxTokens: 1500

``{name}`` placeholders are filled from the capability parameters. A
placeholder without a value renders as an empty string.
"""

import logging
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from src.core.capabilities.models import CamelModel
from src.core.config.settings import DEFAULT_PROMPT_DIRECTORY
from src.core.config.yaml_loader import YAMLLoadError, iter_yaml_files, load_yaml
from src.core.errors import ExecutionFailureError
from src.core.intelligence.llm.client import LLMClient

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class PromptNotFoundError(ExecutionFailureError):
    """Raised when a capability references an unknown prompt id."""

    def __init__(self, prompt_id: str, available: list[str]):
        self.prompt_id = prompt_id
        super().__init__(
            f"Prompt '{prompt_id}' not found. Available: {', '.join(available) or '(none)'}",
            details={"promptId": prompt_id},
        )


class PromptTemplate(CamelModel):
    """A stored prompt."""

    id: str
    description: str = ""
    system_prompt: str | None = None
    template: str
    temperature: float = 0.7
    max_tokens: int = 1500

    @property
    def placeholders(self) -> list[str]:
        """Placeholder names in order of first appearance."""
        names: list[str] = []
        for name in _PLACEHOLDER.findall(self.template):
            if name not in names:
                names.append(name)
        return names


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "כן" if value else "לא"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return "; ".join(f"{k}: {v}" for k, v in value.items())
    return str(value)


def interpolate(template: str, params: dict[str, Any]) -> str:
    """Replace ``{name}`` placeholders; missing ones render empty."""

    def replace(match: re.Match) -> str:
        return _format_value(params.get(match.group(1)))

    return _PLACEHOLDER.sub(replace, template)


class PromptLibrary:
    """In-memory library of prompt templates."""

    def __init__(self, templates: list[PromptTemplate] | None = None):
        self._templates: dict[str, PromptTemplate] = {}
        for template in templates or []:
            self.add(template)

    @classmethod
    def from_directory(cls, directory: Path | None = None) -> "PromptLibrary":
        """Load every YAML prompt of a directory.

        Raises:
            YAMLLoadError: If a file is unreadable or not a valid prompt.
        """
        directory = directory or DEFAULT_PROMPT_DIRECTORY
        templates = []
        for path in iter_yaml_files(directory):
            try:
                templates.append(PromptTemplate.model_validate(load_yaml(path)))
            except ValidationError as e:
                raise YAMLLoadError(path, str(e)) from e
        logger.debug("Loaded %d prompt templates from %s", len(templates), directory)
        return cls(templates)

    def add(self, template: PromptTemplate) -> None:
        """Add or replace a template."""
        self._templates[template.id] = template

    def get(self, prompt_id: str) -> PromptTemplate:
        """Get a template by id.

        Raises:
            PromptNotFoundError: If the id is unknown.
        """
        template = self._templates.get(prompt_id)
        if template is None:
            raise PromptNotFoundError(prompt_id, sorted(self._templates))
        return template

    def render(self, prompt_id: str, params: dict[str, Any]) -> str:
        """Render a template with parameters."""
        return interpolate(self.get(prompt_id).template, params)

    def __contains__(self, prompt_id: object) -> bool:
        return prompt_id in self._templates

    def __len__(self) -> int:
        return len(self._templates)


class PromptRunner:
    """Renders a prompt and hands it to the LLM."""

    def __init__(self, llm_client: LLMClient, library: PromptLibrary):
        self._llm = llm_client
        self.library = library

    async def run(self, prompt_id: str, params: dict[str, Any]) -> dict[str, Any]:
        """Generate text for a prompt.

        Returns:
            ``{"content": <text>, "promptId": <id>}``

        Raises:
            PromptNotFoundError: If the prompt id is unknown.
            LLMError: If generation fails.
        """
        template = self.library.get(prompt_id)
        response = await self._llm.complete(
            prompt=interpolate(template.template, params),
            system_prompt=template.system_prompt,
            temperature=template.temperature,
            max_tokens=template.max_tokens,
        )
        return {"content": response.content, "promptId": prompt_id}
