"""Catalog of the theme categories detected during insight extraction."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ThemeDefinition:
    """A named topic category and the prompt describing it to the model."""

    id: str
    name: str
    prompt: str


THEMES: tuple[ThemeDefinition, ...] = (
    ThemeDefinition(
        id="pain-points",
        name="Pain Points",
        prompt="User frustrations, problems, complaints, difficulties, blockers",
    ),
    ThemeDefinition(
        id="feature-requests",
        name="Feature Requests",
        prompt=(
            'Desired features, wishlist items, "I wish it could...", '
            "suggestions for improvement"
        ),
    ),
    ThemeDefinition(
        id="positive-feedback",
        name="Positive Feedback",
        prompt="What users liked, praised, found valuable, appreciated, works well",
    ),
    ThemeDefinition(
        id="pricing",
        name="Pricing",
        prompt=(
            "Cost concerns, value perception, willingness to pay, budget constraints, "
            "pricing feedback"
        ),
    ),
    ThemeDefinition(
        id="competition",
        name="Competition",
        prompt=(
            "Mentions of competitors, alternatives, comparisons, "
            "switching from/to other products"
        ),
    ),
    ThemeDefinition(
        id="workflow",
        name="Workflow",
        prompt=(
            "How users currently do things, workarounds, existing processes, "
            "current tools used"
        ),
    ),
    ThemeDefinition(
        id="decisions",
        name="Decisions",
        prompt="Key decisions made, action items, next steps, conclusions, agreements",
    ),
    ThemeDefinition(
        id="questions",
        name="Questions",
        prompt=(
            "Open questions raised, things needing clarification, uncertainties, "
            "follow-ups needed"
        ),
    ),
)

_THEMES_BY_ID = {theme.id: theme for theme in THEMES}


def get_theme(theme_id: str) -> ThemeDefinition | None:
    return _THEMES_BY_ID.get(theme_id)


def is_known_theme(theme_id: object) -> bool:
    return isinstance(theme_id, str) and theme_id in _THEMES_BY_ID


def theme_ids() -> list[str]:
    return [theme.id for theme in THEMES]


def theme_prompt_list() -> str:
    """Render the registry as ``- <id>: <prompt>`` lines for the system prompt."""
    return "\n".join(f"- {theme.id}: {theme.prompt}" for theme in THEMES)
