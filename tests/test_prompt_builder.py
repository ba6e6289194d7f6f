"""Tests for system-instruction synthesis."""
from app.models.schemas import clamp_settings
from app.services.prompt_builder import (
    OUTLINE_SHAPE_EXAMPLE,
    build_instruction,
    depth_ranges,
    style_guideline,
)


def test_default_instruction_mentions_shape_and_limits():
    text = build_instruction()
    assert text.startswith("You are a mind map generation expert. Create a normal")
    assert OUTLINE_SHAPE_EXAMPLE in text
    assert "never more than 5" in text
    assert "never more than 4" in text
    assert "Each subtopic should have 3 key points" in text
    assert "0-2 subpoints" in text
    assert "Return ONLY the JSON object" in text


def test_shape_names_every_validated_field():
    for field in ("topics", "subtopics", "points", "subpoints", "crossReferences",
                  "targetTopic", "metadata", "keyTakeaways"):
        assert f'"{field}"' in OUTLINE_SHAPE_EXAMPLE


def test_depth_and_style_drive_guidelines():
    text = build_instruction({"topicDepth": "deep", "style": "academic"})
    assert "Create 3-4 main topics" in text
    assert "4-6 subtopics" in text
    assert "Use formal language and include citations where relevant." in text


def test_feature_flags_toggle_lines():
    off = build_instruction()
    on = build_instruction(
        {"includeExamples": True, "includeCitations": True, "crossTopicRelations": True}
    )
    assert "Keep examples minimal" in off
    assert "Include specific examples and case studies" in on
    assert "Include relevant citations and references" in on
    assert "cross-references between related topics" in on


def test_out_of_range_limits_are_clamped_in_text():
    text = build_instruction({"maxTopics": 500})
    assert "never more than 100" in text
    assert "500" not in text


def test_language_line_only_when_set():
    assert "Write all titles" not in build_instruction()
    assert "Write all titles and descriptions in German" in build_instruction(
        clamp_settings({"language": "German"})
    )


def test_guidelines_are_numbered():
    text = build_instruction()
    assert "\n1. Create" in text
    assert "\n2. Each main topic" in text


def test_unknown_values_fall_back():
    assert depth_ranges("sideways") == ("4-6", "3-4")
    assert style_guideline("shouty") == style_guideline("professional")
