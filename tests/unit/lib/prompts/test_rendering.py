"""Unit tests for placeholder rendering."""

from aura_prompts.lib.prompts.rendering import (
    SAMPLE_VALUES,
    find_placeholders,
    render_template,
    sample_values,
)


def test_find_placeholders_ordered_and_unique():
    template = "Hi {{lead_name}} at {{company}}, {{lead_name}} again and {{ score }}"
    assert find_placeholders(template) == ["lead_name", "company", "score"]


def test_render_known_and_missing():
    rendered = render_template("{{lead_name}} / {{unknown}}", SAMPLE_VALUES)
    assert rendered == "Sarah Chen / [unknown]"


def test_render_custom_missing_marker():
    assert render_template("{{x}}", {}, missing="<{name}>") == "<x>"


def test_registry_templates_render_without_braces(registry):
    for entry in registry.entries():
        rendered = render_template(entry.default_prompt_template, sample_values())
        assert "{{" not in rendered, entry.prompt_key


def test_sample_values_test_input():
    values = sample_values("my text")
    assert values["content"] == "my text"
    assert values["user_prompt"] == "my text"
    assert SAMPLE_VALUES["content"] == "Sample content for analysis"
