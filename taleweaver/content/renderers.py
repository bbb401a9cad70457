"""Prompt rendering utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .models import ContextSnapshot
from .prompts import PromptTemplate


@dataclass
class RenderedPrompt:
    system: str
    user: str


def render_prompt(
    template: PromptTemplate,
    context: Optional[ContextSnapshot] = None,
    extra: Optional[Mapping[str, str]] = None,
) -> RenderedPrompt:
    """Render a prompt template using the supplied context.

    Placeholders use ``{{double_brace}}`` syntax so JSON examples inside
    templates need no escaping. Context placeholders are always available;
    ``extra`` supplies the operation-specific ones. Unknown placeholders are
    left as-is.
    """

    context = context or ContextSnapshot()
    replacements: Dict[str, str] = {
        "{{context_summary}}": context.summary() or "(nothing established yet)",
        "{{memory_context}}": context.memory_context,
        "{{director_guidance}}": context.director_guidance or "none",
    }
    for key, value in (extra or {}).items():
        replacements[f"{{{{{key}}}}}"] = value

    system = template.system
    user = template.user
    for placeholder, value in replacements.items():
        system = system.replace(placeholder, value)
        user = user.replace(placeholder, value)

    return RenderedPrompt(system=system, user=user)
