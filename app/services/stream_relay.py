"""
Relays OpenRouter completions to the browser as a UI message stream

The provider is called through the OpenAI-compatible streaming API. Text
deltas are forwarded as they arrive; tool calls are assembled from their
argument fragments, executed against the video catalog, and the
conversation continues with the tool results.
"""

import asyncio
import json
import logging
import uuid as uuid_lib
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Union

from app.core.config import settings
from app.deps.openrouter_client import get_openrouter_client, translate_provider_error
from app.services.prompts import SEARCH_VIDEO_TOOL_NAME
from app.services.sse import encode_done, encode_event
from app.services.video_search import VideoSearchService, video_search_service

logger = logging.getLogger(__name__)

DEFAULT_TOOL_VIDEO_LIMIT = 3
PROVIDER_ROLES = ("user", "assistant", "system")

FinishCallback = Callable[[str], Union[None, Awaitable[None]]]


def to_provider_messages(messages: List[Any], separator: str = "\n") -> List[Dict[str, str]]:
    """
    Convert UI messages to provider chat messages

    Tool messages and messages without text are dropped.
    """
    converted = []
    for message in messages:
        if message.role not in PROVIDER_ROLES:
            continue
        text = message.text(separator)
        if not text:
            continue
        converted.append({"role": message.role, "content": text})
    return converted


async def prime_stream(frames: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Pull the first frame before the response starts

    Failures that happen before any output (missing key, rejected request)
    surface here so the route can still answer with a JSON error.
    """
    first = await frames.__anext__()

    async def replay() -> AsyncIterator[str]:
        yield first
        async for frame in frames:
            yield frame

    return replay()


class StreamRelay:
    """
    Multiplexes one assistant turn (text and tool activity) into SSE frames
    """

    def __init__(self, search_service: Optional[VideoSearchService] = None, max_tool_steps: Optional[int] = None):
        self.search_service = search_service or video_search_service
        self.max_tool_steps = max_tool_steps or settings.max_tool_steps

    async def _open(self, client, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]]):
        kwargs = {
            "model": settings.chat_model,
            "messages": messages,
            "stream": True,
            "temperature": settings.chat_temperature,
            "max_tokens": settings.chat_max_tokens,
        }
        if tools:
            kwargs["tools"] = tools
        return await client.chat.completions.create(**kwargs)

    def execute_tool(self, name: str, arguments: str) -> Dict[str, Any]:
        """
        Run a tool call requested by the model

        Returns:
            Tool output; search failures are reported in the output, not raised
        """
        try:
            args = json.loads(arguments) if arguments else {}
        except json.JSONDecodeError:
            logger.warning(f"Unparseable arguments for tool {name}: {arguments[:100]}")
            args = {}
        if not isinstance(args, dict):
            args = {}

        if name != SEARCH_VIDEO_TOOL_NAME:
            logger.warning(f"Model requested unknown tool: {name}")
            return {"error": f"Unknown tool: {name}"}

        focus = args.get("subtopic") or args.get("category") or "boxing technique"
        try:
            videos = self.search_service.search(
                category=args.get("category"),
                subtopic=args.get("subtopic"),
                tags=args.get("tags") if isinstance(args.get("tags"), list) else None,
                limit=int(args.get("limit") or DEFAULT_TOOL_VIDEO_LIMIT),
            )
        except (RuntimeError, ValueError, TypeError) as e:
            logger.error(f"Video search tool failed: {str(e)}")
            return {"type": "video_selections", "videos": [], "error": str(e)}

        logger.info(f"Video search tool found {len(videos)} videos: {[v['video_id'] for v in videos]}")
        return {
            "type": "video_selections",
            "videos": [
                {
                    "video_id": v["video_id"],
                    "title": v["video_title"],
                    "topic": v["topic"],
                    "subtopic": v["subtopic"],
                    "reason": f"Relevant video for {focus}",
                }
                for v in videos
            ],
        }

    async def stream(
        self,
        messages: List[Dict[str, Any]],
        system_prompt: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        on_finish: Optional[FinishCallback] = None,
        client=None,
    ) -> AsyncIterator[str]:
        """
        Stream one assistant turn as SSE frames

        Args:
            messages: Provider chat messages (role/content)
            system_prompt: System instruction prepended to the conversation
            tools: Optional OpenAI-format tool declarations
            on_finish: Called with the accumulated text once the stream ends,
                including when the provider fails mid-stream; not called when
                the client disconnects

        Yields:
            ``data: <json>`` frames ending with ``data: [DONE]``

        Raises:
            MissingAPIKeyError, InvalidAPIKeyError, RuntimeError: before the first frame only
        """
        conversation: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}] + list(messages)
        try:
            client = client or get_openrouter_client()
            response = await self._open(client, conversation, tools)
        except Exception as e:
            error = translate_provider_error(e)
            if error is e:
                raise
            raise error from e

        yield encode_event({"type": "start"})

        text = ""
        text_id: Optional[str] = None
        step = 0
        try:
            while True:
                step += 1
                step_text = ""
                tool_calls: Dict[int, Dict[str, Any]] = {}

                async for chunk in response:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta
                    if delta is None:
                        continue

                    if delta.content:
                        if text_id is None:
                            text_id = f"text-{uuid_lib.uuid4().hex[:12]}"
                            yield encode_event({"type": "text-start", "id": text_id})
                        text += delta.content
                        step_text += delta.content
                        yield encode_event({"type": "text-delta", "id": text_id, "delta": delta.content})

                    for fragment in delta.tool_calls or []:
                        call = tool_calls.setdefault(
                            fragment.index, {"id": None, "name": None, "arguments": "", "announced": False}
                        )
                        if fragment.id:
                            call["id"] = fragment.id
                        if fragment.function is not None:
                            if fragment.function.name:
                                call["name"] = fragment.function.name
                            if fragment.function.arguments:
                                call["arguments"] += fragment.function.arguments
                        if not call["announced"] and call["name"]:
                            call["id"] = call["id"] or f"call_{uuid_lib.uuid4().hex[:12]}"
                            call["announced"] = True
                            yield encode_event({
                                "type": "tool-input-start",
                                "toolCallId": call["id"],
                                "toolName": call["name"],
                            })

                if text_id is not None:
                    yield encode_event({"type": "text-end", "id": text_id})
                    text_id = None

                calls = [tool_calls[i] for i in sorted(tool_calls) if tool_calls[i]["announced"]]
                if not calls:
                    break

                results = []
                for call in calls:
                    try:
                        call_input = json.loads(call["arguments"]) if call["arguments"] else {}
                    except json.JSONDecodeError:
                        call_input = {}
                    yield encode_event({
                        "type": "tool-input-available",
                        "toolCallId": call["id"],
                        "toolName": call["name"],
                        "input": call_input,
                    })
                    output = self.execute_tool(call["name"], call["arguments"])
                    results.append((call, output))
                    yield encode_event({
                        "type": "tool-output-available",
                        "toolCallId": call["id"],
                        "output": output,
                    })

                if step >= self.max_tool_steps:
                    logger.info(f"Reached {self.max_tool_steps} provider steps, ending turn after tool calls")
                    break

                conversation.append({
                    "role": "assistant",
                    "content": step_text or None,
                    "tool_calls": [
                        {
                            "id": call["id"],
                            "type": "function",
                            "function": {"name": call["name"], "arguments": call["arguments"] or "{}"},
                        }
                        for call, _ in results
                    ],
                })
                for call, output in results:
                    conversation.append({
                        "role": "tool",
                        "tool_call_id": call["id"],
                        "content": json.dumps(output),
                    })
                response = await self._open(client, conversation, tools)

        except (asyncio.CancelledError, GeneratorExit):
            logger.info(f"Client disconnected after {len(text)} characters; response not saved")
            raise
        except Exception as e:
            error = translate_provider_error(e)
            logger.error(f"Stream interrupted after {len(text)} characters: {str(error)}")
            if text_id is not None:
                yield encode_event({"type": "text-end", "id": text_id})
            yield encode_event({"type": "error", "errorText": str(error)})
            await self._finish(on_finish, text)
            yield encode_done()
            return

        yield encode_event({"type": "finish"})
        await self._finish(on_finish, text)
        yield encode_done()

    async def _finish(self, on_finish: Optional[FinishCallback], text: str) -> None:
        if on_finish is None or not text.strip():
            return
        result = on_finish(text)
        if asyncio.iscoroutine(result):
            await result


stream_relay = StreamRelay()
