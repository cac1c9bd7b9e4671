# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for prompt templates."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.config.yaml_loader import YAMLLoadError
from src.core.execution.prompts import (
    PromptLibrary,
    PromptNotFoundError,
    PromptRunner,
    PromptTemplate,
    interpolate,
)
from src.core.intelligence.llm.client import LLMResponse


@pytest.mark.unit
class TestInterpolate:
    """Tests for placeholder interpolation."""

    def test_values_formatted(self) -> None:
        """Test strings, lists, booleans and missing values."""
        template = "נושא: {topic}. קריטריונים: {criteria}. מפתח: {includeAnswerKey}. כיתה: {grade}."

        result = interpolate(
            template,
            {"topic": "שברים", "criteria": ["דיוק", "ניסוח"], "includeAnswerKey": False},
        )

        assert result == "נושא: שברים. קריטריונים: דיוק, ניסוח. מפתח: לא. כיתה: ."

    def test_placeholders_listed_once(self) -> None:
        """Test placeholder discovery."""
        template = PromptTemplate(id="t", template="{a} {b} {a}")

        assert template.placeholders == ["a", "b"]


@pytest.mark.unit
class TestPromptLibrary:
    """Tests for PromptLibrary."""

    def test_bundled_templates_load(self) -> None:
        """Test that the bundled prompt templates load."""
        library = PromptLibrary.from_directory()

        assert "parent_letter" in library
        assert "student_feedback" in library
        assert library.get("parent_letter").max_tokens == 1500

    def test_render(self) -> None:
        """Test rendering by id."""
        library = PromptLibrary([PromptTemplate(id="hello", template="שלום {name}")])

        assert library.render("hello", {"name": "דנה"}) == "שלום דנה"

    def test_unknown_prompt_raises(self) -> None:
        """Test that unknown ids list the available ones."""
        library = PromptLibrary([PromptTemplate(id="hello", template="x")])

        with pytest.raises(PromptNotFoundError) as exc_info:
            library.get("goodbye")

        assert exc_info.value.prompt_id == "goodbye"
        assert "hello" in str(exc_info.value)

    def test_invalid_template_file_raises(self, tmp_path: Path) -> None:
        """Test that a file without a template is rejected."""
        (tmp_path / "broken.yaml").write_text("id: broken\n", encoding="utf-8")

        with pytest.raises(YAMLLoadError):
            PromptLibrary.from_directory(tmp_path)


@pytest.mark.unit
class TestPromptRunner:
    """Tests for PromptRunner."""

    @pytest.mark.asyncio
    async def test_run_sends_rendered_prompt(self) -> None:
        """Test that the rendered prompt and template settings reach the LLM."""
        llm = MagicMock()
        llm.complete = AsyncMock(return_value=LLMResponse(content="הורים יקרים...", model="m"))
        library = PromptLibrary(
            [
                PromptTemplate(
                    id="parent_letter",
                    systemPrompt="אתה מורה",
                    template="מכתב בנושא {subject}",
                    temperature=0.4,
                    maxTokens=800,
                )
            ]
        )
        runner = PromptRunner(llm, library)

        result = await runner.run("parent_letter", {"subject": "טיול"})

        assert result == {"content": "הורים יקרים...", "promptId": "parent_letter"}
        llm.complete.assert_awaited_once_with(
            prompt="מכתב בנושא טיול",
            system_prompt="אתה מורה",
            temperature=0.4,
            max_tokens=800,
        )
