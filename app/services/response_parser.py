"""
Reconciles streamed assistant text into display text and UI affordances

Assistant replies end with a fenced ```json block carrying follow-up actions,
video search hints and an optional quiz. The block is only interpreted once it
is complete and valid; until then the raw text is shown as-is.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from app.schemas.chat import ACTION_KINDS, ParsedResponse, Quiz, QuizOption, SuggestedAction
from app.schemas.coach import CoachingResult, VideoRecommendation

logger = logging.getLogger(__name__)

# First fenced json block; non-greedy so prose after the block is not swallowed
FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")

MAX_ACTIONS = 4
MAX_VIDEO_TERMS = 3
DEFAULT_ACTION = "explore_topic"


def join_text_parts(parts: Optional[Iterable[Any]]) -> str:
    """
    Concatenate the text parts of a UI message in arrival order

    Parts may be dicts or MessagePart models; non-text parts are skipped.
    """
    if not parts:
        return ""
    chunks = []
    for part in parts:
        part_type = part.get("type") if isinstance(part, dict) else getattr(part, "type", None)
        if part_type != "text":
            continue
        text = part.get("text") if isinstance(part, dict) else getattr(part, "text", None)
        chunks.append(text or "")
    return "".join(chunks)


def _extract_block(raw_text: str):
    """
    Find and decode the fenced JSON block

    Returns:
        (match, payload) where payload is the decoded JSON value (not
        necessarily an object), or (None, None) when there is no valid block
    """
    match = FENCED_JSON_RE.search(raw_text)
    if not match:
        return None, None
    try:
        payload = json.loads(match.group(1))
    except (json.JSONDecodeError, ValueError) as e:
        logger.debug(f"Failed to parse JSON block from response: {e}")
        return None, None
    if not isinstance(payload, dict):
        logger.debug(f"Fenced JSON block is a {type(payload).__name__}, no structured fields")
    return match, payload


def _strip_block(raw_text: str, match: "re.Match") -> str:
    return (raw_text[:match.start()] + raw_text[match.end():]).strip()


def _parse_actions(items: Any) -> List[SuggestedAction]:
    if not isinstance(items, list):
        return []

    actions = []
    for item in items:
        if not isinstance(item, dict):
            continue
        label = str(item.get("label") or "")
        kind = item.get("type") or item.get("action")
        if kind not in ACTION_KINDS:
            kind = DEFAULT_ACTION
        value = item.get("query") or item.get("value") or label
        video_id = item.get("video_id")
        actions.append(SuggestedAction(
            label=label,
            action=kind,
            value=str(value),
            video_id=str(video_id) if video_id else None,
        ))
        if len(actions) == MAX_ACTIONS:
            break
    return actions


def _parse_quiz(data: Any) -> Optional[Quiz]:
    if not isinstance(data, dict) or not data.get("question"):
        return None

    options = []
    options_data = data.get("options")
    for option in options_data if isinstance(options_data, list) else []:
        if not isinstance(option, dict):
            continue
        options.append(QuizOption(
            id=str(option.get("id") or "A"),
            text=str(option.get("text") or ""),
            is_correct=bool(option.get("is_correct") or False),
        ))

    return Quiz(
        question=str(data["question"]),
        options=options,
        explanation=str(data.get("explanation") or ""),
    )


def parse_assistant_response(raw_text: str) -> ParsedResponse:
    """
    Split an assistant reply into visible prose and structured affordances

    Args:
        raw_text: Concatenated text of one assistant turn

    Returns:
        ParsedResponse; when the block is absent or malformed the text is the
        raw input unchanged and every structured field is empty. A valid block
        that is not an object is still removed from the text.
    """
    raw_text = raw_text or ""
    match, payload = _extract_block(raw_text)
    if match is None:
        return ParsedResponse(text=raw_text)
    if not isinstance(payload, dict):
        return ParsedResponse(text=_strip_block(raw_text, match))

    terms = payload.get("videos")
    if isinstance(terms, list):
        terms = [t for t in terms if isinstance(t, str)][:MAX_VIDEO_TERMS]
    else:
        terms = []
    return ParsedResponse(
        text=_strip_block(raw_text, match),
        actions=_parse_actions(payload.get("actions")),
        video_search_terms=terms,
        quiz=_parse_quiz(payload.get("quiz")),
    )


def _tool_video_recommendations(tool_videos: List[Dict[str, Any]], generic_reason: bool = False) -> List[VideoRecommendation]:
    recommendations = []
    for video in tool_videos:
        if not video.get("video_id"):
            continue
        if generic_reason:
            reason = "Recommended training video"
        else:
            focus = video.get("subtopic") or video.get("topic") or "boxing technique"
            reason = f"Recommended training video for {focus}"
        recommendations.append(VideoRecommendation(
            video_id=video["video_id"],
            title=video.get("title") or "",
            reason=reason,
        ))
    return recommendations


def parse_coaching_response(raw_text: str, tool_videos: Optional[List[Dict[str, Any]]] = None) -> CoachingResult:
    """
    Reconcile lead-magnet coaching output

    The model is asked for {"response": ..., "video_recommendations": [...]}.
    Videos returned by the search tool stand in for missing recommendations.

    Args:
        raw_text: Full streamed text
        tool_videos: Videos surfaced by tool-output events during the stream

    Returns:
        CoachingResult; ``response`` is None when nothing usable was produced
    """
    raw_text = raw_text or ""
    tool_videos = tool_videos or []
    match, payload = _extract_block(raw_text)

    if match is not None and isinstance(payload, dict) and payload.get("response"):
        recommendations = []
        items = payload.get("video_recommendations")
        for item in items if isinstance(items, list) else []:
            if isinstance(item, dict) and item.get("video_id"):
                recommendations.append(VideoRecommendation(
                    video_id=str(item["video_id"]),
                    title=str(item.get("title") or ""),
                    reason=str(item["reason"]) if item.get("reason") is not None else None,
                ))
        if not recommendations and tool_videos:
            recommendations = _tool_video_recommendations(tool_videos)
            logger.info(f"Using {len(recommendations)} tool videos as recommendations")
        return CoachingResult(
            text=_strip_block(raw_text, match),
            response=str(payload["response"]),
            video_recommendations=recommendations,
        )

    text = _strip_block(raw_text, match) if match is not None else raw_text
    if tool_videos:
        return CoachingResult(
            text=text,
            response=raw_text,
            video_recommendations=_tool_video_recommendations(tool_videos, generic_reason=True),
        )
    return CoachingResult(text=text)
