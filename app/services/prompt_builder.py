"""
System-instruction synthesis for outline generation.

The instruction is advisory text: the LLM is steered towards the outline
schema and the requested sizes, but nothing here is enforced locally.  The
field names and nesting in ``OUTLINE_SHAPE_EXAMPLE`` must match what
``outline_validator.parse_outline`` accepts.
"""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from app.models.schemas import (
    GenerationSettings,
    TopicDepth,
    WritingStyle,
    clamp_settings,
)

# (topic range, subtopic range) per depth preference
DEPTH_RANGES: Dict[TopicDepth, Tuple[str, str]] = {
    TopicDepth.BROAD: ("5-8", "2-3"),
    TopicDepth.DEEP: ("3-4", "4-6"),
    TopicDepth.BALANCED: ("4-6", "3-4"),
}

STYLE_GUIDELINES: Dict[WritingStyle, str] = {
    WritingStyle.ACADEMIC: "Use formal language and include citations where relevant.",
    WritingStyle.PROFESSIONAL: (
        "Use clear, business-oriented language with practical examples."
    ),
    WritingStyle.CREATIVE: "Use engaging, creative language with innovative connections.",
}

OUTLINE_SHAPE_EXAMPLE = """\
{
  "topics": [
    {
      "title": "Main Topic Area",
      "description": "Comprehensive overview of this main topic area",
      "keywords": ["key1", "key2"],
      "subtopics": [
        {
          "title": "Key Subtopic",
          "description": "Detailed explanation of this subtopic",
          "importance": "high|medium|low",
          "keywords": ["key1", "key2"],
          "points": [
            {
              "title": "Important Point",
              "description": "Specific detail or example",
              "complexity": "basic|intermediate|advanced",
              "keywords": ["key1", "key2"],
              "examples": ["Example 1", "Example 2"],
              "citations": ["Citation 1", "Citation 2"],
              "subpoints": ["Additional detail 1", "Additional detail 2"]
            }
          ]
        }
      ],
      "crossReferences": [
        {
          "targetTopic": "Other Topic Title",
          "relationship": "Description of relationship",
          "strength": "strong|moderate|weak"
        }
      ]
    }
  ],
  "metadata": {
    "complexity": "basic|intermediate|advanced",
    "estimatedReadingTime": 30,
    "keyTakeaways": ["Key point 1", "Key point 2"],
    "suggestedReadings": ["Resource 1", "Resource 2"]
  }
}"""

_INSTRUCTION_TEMPLATE = """\
You are a mind map generation expert. Create a {detail_level} hierarchical \
structure for the following topic.
Return ONLY a valid JSON object with the following structure, and nothing else:
{shape}

Important Guidelines:
{guidelines}\
"""


def depth_ranges(topic_depth: Any) -> Tuple[str, str]:
    """Topic and subtopic count ranges for a depth preference."""
    try:
        depth = TopicDepth(topic_depth)
    except ValueError:
        depth = TopicDepth.BALANCED
    return DEPTH_RANGES[depth]


def style_guideline(style: Any) -> str:
    """Guideline sentence for a writing style; professional when unknown."""
    try:
        return STYLE_GUIDELINES[WritingStyle(style)]
    except ValueError:
        return STYLE_GUIDELINES[WritingStyle.PROFESSIONAL]


def _guidelines(settings: GenerationSettings) -> List[str]:
    topic_range, subtopic_range = depth_ranges(settings.topic_depth)
    lines = [
        f"Create {topic_range} main topics that cover different aspects "
        f"(never more than {settings.max_topics})",
        f"Each main topic should have {subtopic_range} subtopics "
        f"(never more than {settings.max_subtopics})",
        f"Each subtopic should have {settings.max_points} key points",
        f"Points can have 0-{settings.max_subpoints} subpoints for extra detail",
        style_guideline(settings.style),
        "Ensure logical flow and connections between levels",
        "Include specific examples and case studies"
        if settings.include_examples else "Keep examples minimal",
        "Include relevant citations and references"
        if settings.include_citations else "Citations are optional",
        "Include detailed definitions and explanations"
        if settings.include_definitions else "Keep definitions concise",
        "Create meaningful cross-references between related topics, using the "
        "exact title of the target topic in targetTopic"
        if settings.cross_topic_relations else "Cross-references are optional",
    ]
    if settings.language:
        lines.append(f"Write all titles and descriptions in {settings.language}")
    lines += [
        "Every topic must have a subtopics array and every subtopic a points "
        "array, even when empty",
        "Return ONLY the JSON object, no other text",
        "Ensure the JSON is properly formatted",
    ]
    return lines


def build_instruction(settings: Any = None) -> str:
    """
    Build the system instruction for one generation call.

    Accepts a ``GenerationSettings`` or any settings-like mapping; values are
    clamped first so the text never mentions an out-of-range limit.
    """
    clamped = clamp_settings(settings)
    guidelines = "\n".join(
        f"{n}. {line}" for n, line in enumerate(_guidelines(clamped), start=1)
    )
    return _INSTRUCTION_TEMPLATE.format(
        detail_level=clamped.detail_level.value,
        shape=OUTLINE_SHAPE_EXAMPLE,
        guidelines=guidelines,
    )
