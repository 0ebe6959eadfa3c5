"""
Unit tests for coaching prompts
"""

from app.schemas.coach import CoachingContext
from app.services.prompts import (
    CHAT_SYSTEM_PROMPT,
    SEARCH_VIDEO_TOOL,
    create_system_prompt,
)


def test_chat_prompt_asks_for_fenced_json():
    assert "```json" in CHAT_SYSTEM_PROMPT
    assert '"actions"' in CHAT_SYSTEM_PROMPT


def test_search_tool_declaration():
    function = SEARCH_VIDEO_TOOL["function"]
    assert function["name"] == "search_video_library"
    assert function["parameters"]["properties"]["category"]["enum"] == ["Technique", "Tactics", "Training", "Mindset"]


def test_system_prompt_includes_form_context():
    context = CoachingContext(**{
        "category": "Technique",
        "formData": {
            "category": "Technique",
            "technique": "Jab",
            "techniqueFocus": "Speed",
            "location": "Home",
            "equipment": ["Heavy bag", "Rope"],
            "question": "How do I stop telegraphing?",
        },
        "userProfile": {"stance": "Southpaw", "experience": "Beginner", "name": "Sam"},
    })

    prompt = create_system_prompt(context)

    assert "- Stance: Southpaw" in prompt
    assert "- Name: Sam" in prompt
    assert "- Technique: Jab" in prompt
    assert "- Focus: Speed" in prompt
    assert "- Equipment: Heavy bag, Rope" in prompt
    assert "- Specific Question: How do I stop telegraphing?" in prompt


def test_system_prompt_without_context():
    prompt = create_system_prompt(None)
    assert "USER PROFILE" not in prompt
    assert "search_video_library" in prompt
