"""LLM prompt templates for the analysis phases.

Each phase gets the task, the codebase path and the full output of every
earlier phase. Early phases may end with a ``## Clarifying Questions``
section; the change-planning phase must emit tickets in the
``### Ticket #N: Title`` format understood by ``sightline.tickets.parser``.
"""

from collections.abc import Mapping

from sightline.models.session import PHASES, QUESTION_PHASES, phase_title

# =============================================================================
# Shared instructions
# =============================================================================

_COMMON_RULES = """
WRITING RULES:
1. Use SPECIFIC names from the codebase: modules, classes, functions, file paths.
2. State findings definitively. Do not hedge ("appears to", "likely", "probably").
3. Respond in valid Markdown using the structure below. No preamble.
"""

CLARIFYING_QUESTIONS_INSTRUCTION = """
If anything about the task is ambiguous and would change the plan, end your
response with a section titled exactly "## Clarifying Questions" containing
one question per bullet ("- ..."). Omit the section when nothing is unclear.
"""

# Per-phase role and response structure
PHASE_INSTRUCTIONS: dict[str, str] = {
    "domain_research": (
        "You are a domain expert helping a developer understand the business domain "
        "behind a change to an existing codebase.\n\n"
        "RESPONSE FORMAT:\n"
        "# Domain Research\n\n"
        "## Overview\n[2-3 paragraphs on the domain]\n\n"
        "## Core Concepts\n### [Concept]\n[definition, rules, relationships]\n\n"
        "## Industry Standards\n## Common Implementation Patterns\n"
        "## Compliance Requirements\n## Edge Cases & Gotchas\n"
        "## Implications for This Task"
    ),
    "tech_stack": (
        "You are a senior engineer documenting the technology stack of the codebase.\n\n"
        "RESPONSE FORMAT:\n"
        "# Tech Stack\n\n"
        "## Languages\n## Frameworks & Libraries\n## Database\n## Infrastructure\n"
        "## Code Quality Tools\n## Testing\n"
        "## Key Dependencies\n| Package | Version | Purpose |"
    ),
    "architecture": (
        "You are a software architect mapping the structure of the codebase.\n\n"
        "RESPONSE FORMAT:\n"
        "# Architecture\n\n"
        "## Application Structure\n## Context Map\n### [Context Name]\n"
        "[purpose, key modules, dependencies]\n\n"
        "## Entry Points\n## Module Relationship Diagram\n```mermaid\n...\n```\n\n"
        "## External Integrations"
    ),
    "conventions": (
        "You are a senior engineer documenting the coding conventions a new change "
        "must follow.\n\n"
        "RESPONSE FORMAT:\n"
        "# Conventions\n\n"
        "## Naming Conventions\n### Modules\n### Functions\n### Files\n\n"
        "## Code Patterns\n### Error Handling\n### Data Access\n\n"
        "## Test Patterns\n### Organization\n### Fixtures\n### Setup"
    ),
    "feature_location": (
        "You are a senior engineer locating the code that the task touches.\n\n"
        "RESPONSE FORMAT:\n"
        "# Feature Location\n\n"
        "## Search Terms Used\n## Data Definitions\n### Primary\n### Related\n\n"
        "## Core Functions\n### [file path]\n[function, line, role]\n\n"
        "## UI / Interface Components\n## Tests\n"
        "## Summary\n| File | Relevance | Notes |"
    ),
    "impact_analysis": (
        "You are a senior engineer assessing the impact of the change on the "
        "existing codebase.\n\n"
        "RESPONSE FORMAT:\n"
        "# Impact Analysis\n\n"
        "## Direct Impact\n| File | Change | Complexity |\n\n"
        "## Indirect Impact\n| File | Usage | Risk |\n\n"
        "## Data Changes\n## Breaking Changes\n## Test Impact\n## Risk Assessment"
    ),
    "change_planning": (
        "You are a senior technical lead creating implementation tickets for a "
        "development team. Each ticket must be specific enough that a junior "
        "engineer can pick it up and start working.\n\n"
        "RESPONSE FORMAT:\n"
        "# Feature: [Title]\n\n"
        "## Executive Summary\n## Scope\n### In Scope\n### Out of Scope\n\n"
        "## Tickets\n\n"
        "### Ticket #1: [Clear, Specific Title]\n\n"
        "**Type:** [Feature | Enhancement | Bugfix | Chore | Docs | Test]\n"
        "**Priority:** [Urgent | High | Medium | Low]\n"
        "**Estimate:** [Trivial | Small | Medium | Large | Extra Large | Epic]\n"
        "**Depends On:** [None | #N]\n"
        "**Blocks:** [None | #N, #N]\n\n"
        "#### Description\n[Detailed description]\n\n"
        "#### Implementation Notes\n[Technical guidance]\n\n"
        "#### Files to Create\n| File | Purpose |\n|------|---------|\n| [path] | [purpose] |\n\n"
        "#### Files to Modify\n| File | Changes |\n|------|---------|\n| [path] | [changes] |\n\n"
        "#### Acceptance Criteria\n- [ ] [Criterion]\n\n"
        "---\n\n"
        "[Repeat for all tickets]\n\n"
        "## Implementation Order\n\n"
        "## Risk Summary\n\n"
        "| Risk | Likelihood | Impact | Mitigation |\n"
        "|------|------------|--------|------------|\n"
        "| [risk] | [Low/Med/High] | [Low/Med/High] | [mitigation] |\n\n"
        "## Estimated Total Effort\n\n"
        "| Category | Tickets | Points |\n|----------|---------|--------|\n"
        "| **Total** | **N** | **N** |"
    ),
}

PHASE_PROMPT_TEMPLATE = """{instructions}
{rules}
TASK DESCRIPTION:
{task}

CODEBASE PATH:
{codebase_path}

PREVIOUS ANALYSIS:
{context}
{questions}"""


def format_context(context: Mapping[str, str], phases: tuple[str, ...] = PHASES) -> str:
    """Format earlier phase outputs for inclusion in a prompt.

    Args:
        context: Phase name -> output text
        phases: Phases to include, in order

    Returns:
        Markdown sections separated by rules, or a placeholder when empty
    """
    sections = [
        f"## {phase_title(phase)}\n{context[phase]}"
        for phase in phases
        if context.get(phase)
    ]
    if not sections:
        return "No previous analysis available."
    return "\n\n---\n\n".join(sections)


def build_phase_prompt(
    phase: str,
    task: str,
    codebase_path: str,
    context: Mapping[str, str],
) -> str:
    """Build the prompt for one phase.

    Only the outputs of phases that precede ``phase`` are included.

    Args:
        phase: Phase name
        task: Task description
        codebase_path: Path of the codebase under analysis
        context: Accumulated phase outputs

    Returns:
        Prompt text

    Raises:
        KeyError: If ``phase`` is not a known phase
    """
    instructions = PHASE_INSTRUCTIONS[phase]
    earlier = PHASES[: PHASES.index(phase)]

    return PHASE_PROMPT_TEMPLATE.format(
        instructions=instructions,
        rules=_COMMON_RULES,
        task=task,
        codebase_path=codebase_path,
        context=format_context(context, earlier),
        questions=CLARIFYING_QUESTIONS_INSTRUCTION if phase in QUESTION_PHASES else "",
    )
