#!/usr/bin/env python3
"""Manual smoke test for a running Claude CLI bridge.

Usage:
    python scripts/manual_test.py [--base-url http://host:port]

This script:
1. Checks /health
2. Lists available models
3. Sends a "hello world" chat completion, then a follow-up on the same
   conversation
4. Streams a completion and prints the visible text as it arrives
"""

from __future__ import annotations

import argparse
import json
import sys
import uuid

import httpx


def _print_header(method: str, url: str) -> None:
    print("\n" + "=" * 60)
    print(f"{method} {url}")
    print("=" * 60)


def _print_error(resp: httpx.Response) -> None:
    print("Error response:")
    try:
        error_data = resp.json()
    except json.JSONDecodeError:
        print(resp.text)
        return
    error = error_data.get("error") if isinstance(error_data, dict) else None
    if error:
        print(f"  Type: {error.get('type', 'unknown')}")
        print(f"  Code: {error.get('code', 'unknown')}")
        print(f"  Message: {error.get('message', 'no message')}")
    else:
        print(json.dumps(error_data, indent=2))


def check_health(base_url: str) -> bool:
    url = f"{base_url.rstrip('/')}/health"
    _print_header("GET", url)
    try:
        resp = httpx.get(url, timeout=10.0)
    except httpx.RequestError as e:
        print(f"Request error: {e}")
        return False
    print(f"Status: {resp.status_code}")
    if resp.status_code != 200:
        _print_error(resp)
        return False
    print(f"Body: {resp.json()}")
    return True


def list_models(base_url: str) -> bool:
    """List available models from the bridge."""
    url = f"{base_url.rstrip('/')}/v1/models"
    _print_header("GET", url)
    try:
        resp = httpx.get(url, timeout=10.0)
    except httpx.RequestError as e:
        print(f"Request error: {e}")
        return False
    print(f"Status: {resp.status_code}")
    if resp.status_code != 200:
        _print_error(resp)
        return False
    models = resp.json().get("data", [])
    print(f"Found {len(models)} model(s):")
    for model in models:
        print(f"  - {model.get('id', 'unknown')}")
    return True


def send_conversation(base_url: str, model: str, timeout: float) -> bool:
    """Send a first turn and a follow-up sharing one conversation id."""
    url = f"{base_url.rstrip('/')}/v1/chat/completions"
    headers = {"X-Conversation-Id": f"manual-{uuid.uuid4().hex[:8]}"}
    messages = [{"role": "user", "content": "Hello, world! Reply with one short sentence."}]

    with httpx.Client(timeout=timeout) as client:
        for turn in (1, 2):
            _print_header("POST", url)
            print(f"Model: {model}, turn {turn}, conversation {headers['X-Conversation-Id']}")
            try:
                resp = client.post(url, json={"model": model, "messages": messages}, headers=headers)
            except httpx.RequestError as e:
                print(f"Request error: {e}")
                return False
            print(f"Status: {resp.status_code}")
            if resp.status_code != 200:
                _print_error(resp)
                return False

            data = resp.json()
            content = data["choices"][0]["message"]["content"]
            print("\nResponse:")
            print("-" * 40)
            print(content.strip())
            print("-" * 40)
            print(f"Usage: {data.get('usage')}")

            messages = messages + [
                {"role": "assistant", "content": content},
                {"role": "user", "content": "What did I just say to you?"},
            ]
    return True


def stream_completion(base_url: str, model: str, timeout: float) -> bool:
    url = f"{base_url.rstrip('/')}/v1/chat/completions"
    payload = {
        "model": model,
        "stream": True,
        "messages": [{"role": "user", "content": "Count from one to five."}],
    }
    _print_header("POST", url + " (stream)")
    finish_reason = None
    try:
        with httpx.stream("POST", url, json=payload, timeout=timeout) as resp:
            print(f"Status: {resp.status_code}")
            for line in resp.iter_lines():
                if not line.startswith("data: "):
                    continue
                data = line[len("data: "):]
                if data == "[DONE]":
                    break
                chunk = json.loads(data)
                if "error" in chunk:
                    print(f"\nStream error: {chunk['error']}")
                    return False
                choice = chunk["choices"][0]
                text = choice.get("delta", {}).get("content")
                if text:
                    print(text, end="", flush=True)
                finish_reason = choice.get("finish_reason") or finish_reason
    except httpx.RequestError as e:
        print(f"Request error: {e}")
        return False
    print(f"\nfinish_reason: {finish_reason}")
    return finish_reason == "stop"


def main() -> None:
    parser = argparse.ArgumentParser(description="Manual test for the Claude CLI bridge")
    parser.add_argument(
        "--base-url",
        default="http://127.0.0.1:3457",
        help="Base URL of the bridge (default: http://127.0.0.1:3457)",
    )
    parser.add_argument("--model", default="claude-haiku", help="Model to request")
    parser.add_argument("--timeout", type=float, default=300.0, help="Per-request timeout in seconds")
    parser.add_argument("--skip-chat", action="store_true", help="Skip the chat completion tests")
    parser.add_argument("--skip-stream", action="store_true", help="Skip the streaming test")
    args = parser.parse_args()

    print("Claude CLI Bridge Manual Test")
    print("=" * 60)
    print(f"Target: {args.base_url}")

    results = [
        ("Health", check_health(args.base_url)),
        ("List Models", list_models(args.base_url)),
    ]
    if not args.skip_chat:
        results.append(("Conversation", send_conversation(args.base_url, args.model, args.timeout)))
    else:
        print("\n[SKIPPED] Conversation")
    if not args.skip_stream:
        results.append(("Stream", stream_completion(args.base_url, args.model, args.timeout)))
    else:
        print("\n[SKIPPED] Stream")

    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    all_passed = True
    for name, passed in results:
        print(f"  {name}: {'PASS' if passed else 'FAIL'}")
        all_passed = all_passed and passed

    if all_passed:
        print("\nAll tests passed!")
        sys.exit(0)
    print("\nSome tests failed!")
    sys.exit(1)


if __name__ == "__main__":
    main()
