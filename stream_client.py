"""
Command-line client for the chat stream

Sends one message to /api/chat (or /api/coach with --coach), prints the reply
as it streams, then prints the follow-up actions, video hints and quiz (or the
recommended videos) reconciled from the final text.
"""

import argparse
import sys
import uuid

import httpx

from app.services.sse import StreamAccumulator


def run(base_url: str, message: str, session_id: str, category: str = None, coach: bool = False) -> int:
    messages = [{"role": "user", "parts": [{"type": "text", "text": message}]}]
    if coach:
        endpoint = "/api/coach"
        payload = {"messages": messages, "isLeadMagnet": True}
    else:
        endpoint = "/api/chat"
        payload = {"sessionId": session_id, "messages": messages}
        if category:
            payload["category"] = category

    accumulator = StreamAccumulator()
    with httpx.stream("POST", f"{base_url}{endpoint}", json=payload, timeout=60.0) as response:
        if response.status_code != 200:
            response.read()
            print(f"Request failed ({response.status_code}): {response.text}", file=sys.stderr)
            return 1
        for chunk in response.iter_bytes():
            for event in accumulator.feed(chunk):
                if event.get("type") == "text-delta":
                    print(event.get("delta", ""), end="", flush=True)
        accumulator.close()

    result = accumulator.result()
    if coach:
        coaching = result.reconcile_coaching()
        print("\n")
        for video in coaching.video_recommendations:
            print(f"Video: {video.title or video.video_id} ({video.reason or 'recommended'})")
        return 0

    parsed = result.reconcile()
    print("\n")
    if not result.done:
        print("(stream ended without [DONE])", file=sys.stderr)
    for action in parsed.actions:
        print(f"[{action.action}] {action.label} -> {action.value}")
    if parsed.video_search_terms:
        print(f"Video hints: {', '.join(parsed.video_search_terms)}")
    if parsed.quiz:
        print(f"Quiz: {parsed.quiz.question}")
        for option in parsed.quiz.options:
            print(f"  {option.id}. {option.text}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Chat with the coach from the terminal")
    parser.add_argument("message")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--session-id", default=None)
    parser.add_argument("--category", default=None)
    parser.add_argument("--coach", action="store_true", help="Use the one-shot coaching endpoint")
    args = parser.parse_args()

    session_id = args.session_id or f"cli-{uuid.uuid4()}"
    print(f"Session: {session_id}", file=sys.stderr)
    sys.exit(run(args.base_url, args.message, session_id, args.category, args.coach))


if __name__ == "__main__":
    main()
