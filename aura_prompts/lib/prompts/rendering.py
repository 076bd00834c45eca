"""Placeholder substitution and prompt test runs.

Templates use {{name}} placeholders. Substitution is plain string replacement;
there is no escaping, conditionals or nesting.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

# Stand-in values for a test run from the prompt editor
SAMPLE_VALUES: Dict[str, str] = {
    "lead_name": "Sarah Chen",
    "company": "TechCorp",
    "score": "85",
    "insights": "Recently raised Series B, expanding engineering team",
    "type": "email",
    "tone": "professional",
    "total_leads": "42",
    "avg_score": "72",
    "status_breakdown": "New: 15, Contacted: 12, Qualified: 10, Won: 5",
    "hot_leads": "8",
    "lead_summary": "Sarah Chen (TechCorp) - Score: 85, Status: Qualified",
    "topic": "AI-Powered Sales Automation",
    "post_title": "The Future of B2B Sales",
    "post_url": "https://example.com/blog/future-b2b-sales",
    "content": "Sample content for analysis",
    "user_prompt": "Analyze my pipeline health",
    "pipeline_context": "Total Leads: 42, Avg Score: 72, Hot: 8",
}


def find_placeholders(template: str) -> List[str]:
    """Placeholder names in order of first appearance, without duplicates."""
    seen: List[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(template):
        name = match.group(1).strip()
        if name not in seen:
            seen.append(name)
    return seen


def render_template(template: str, values: Mapping[str, str], missing: str = "[{name}]") -> str:
    """Replace every {{name}} with values[name], or with missing.format(name=name)."""
    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1).strip()
        if name in values:
            return str(values[name])
        return missing.format(name=name)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def sample_values(test_input: Optional[str] = None) -> Dict[str, str]:
    """SAMPLE_VALUES with the free-text fields replaced by test_input, when given."""
    values = dict(SAMPLE_VALUES)
    if test_input:
        values["content"] = test_input
        values["user_prompt"] = test_input
    return values


class GenerationClient(Protocol):
    """Anything that can run a prompt against a model."""

    async def generate(
        self,
        system_instruction: str,
        prompt: str,
        temperature: float,
        top_p: float,
    ) -> str: ...


@dataclass(frozen=True)
class PromptTestResult:
    output: str
    elapsed_ms: int
