"""Unit tests for phase prompt construction."""

import pytest

from sightline.llm.prompts import (
    CLARIFYING_QUESTIONS_INSTRUCTION,
    PHASE_INSTRUCTIONS,
    build_phase_prompt,
    format_context,
)
from sightline.models.session import PHASES


class TestFormatContext:
    """Tests for format_context."""

    def test_empty_context_placeholder(self) -> None:
        """Test an empty context yields the placeholder text."""
        assert format_context({}) == "No previous analysis available."

    def test_sections_in_phase_order(self) -> None:
        """Test sections follow pipeline order, not insertion order."""
        context = {"architecture": "ARCH", "domain_research": "DOMAIN"}

        text = format_context(context)

        assert text == "## Domain research\nDOMAIN\n\n---\n\n## Architecture\nARCH"

    def test_restricted_to_given_phases(self) -> None:
        """Test only listed phases are included."""
        context = {"domain_research": "DOMAIN", "tech_stack": "STACK"}

        assert "STACK" not in format_context(context, ("domain_research",))

    def test_blank_outputs_skipped(self) -> None:
        """Test empty outputs do not produce empty sections."""
        assert format_context({"tech_stack": ""}) == "No previous analysis available."


class TestBuildPhasePrompt:
    """Tests for build_phase_prompt."""

    def test_every_phase_has_instructions(self) -> None:
        """Test each pipeline phase has a prompt."""
        assert set(PHASE_INSTRUCTIONS) == set(PHASES)

    def test_prompt_contains_inputs(self) -> None:
        """Test the task and codebase path are embedded."""
        prompt = build_phase_prompt("tech_stack", "Add CSV export", "/srv/app", {})

        assert "Add CSV export" in prompt
        assert "/srv/app" in prompt
        assert "# Tech Stack" in prompt

    def test_only_earlier_phases_included(self) -> None:
        """Test a phase never sees its own or later outputs."""
        context = {
            "domain_research": "DOMAIN-OUT",
            "tech_stack": "STACK-OUT",
            "architecture": "ARCH-OUT",
        }

        prompt = build_phase_prompt("tech_stack", "task", "/app", context)

        assert "DOMAIN-OUT" in prompt
        assert "STACK-OUT" not in prompt
        assert "ARCH-OUT" not in prompt

    def test_first_phase_has_no_context(self) -> None:
        """Test the first phase gets the placeholder."""
        prompt = build_phase_prompt("domain_research", "task", "/app", {"tech_stack": "X"})

        assert "No previous analysis available." in prompt

    @pytest.mark.parametrize(
        ("phase", "asks"),
        [
            ("domain_research", True),
            ("conventions", True),
            ("feature_location", False),
            ("change_planning", False),
        ],
    )
    def test_clarifying_questions_only_in_early_phases(self, phase: str, asks: bool) -> None:
        """Test only the early phases are invited to ask questions."""
        prompt = build_phase_prompt(phase, "task", "/app", {})

        assert (CLARIFYING_QUESTIONS_INSTRUCTION in prompt) is asks

    def test_change_planning_asks_for_ticket_format(self) -> None:
        """Test the planning prompt describes the ticket layout the parser reads."""
        prompt = build_phase_prompt("change_planning", "task", "/app", {})

        assert "### Ticket #1:" in prompt
        assert "**Estimate:**" in prompt
        assert "## Risk Summary" in prompt

    def test_unknown_phase_raises(self) -> None:
        """Test unknown phases raise KeyError."""
        with pytest.raises(KeyError):
            build_phase_prompt("deployment", "task", "/app", {})
