#!/usr/bin/env python3
"""
Simulate a GitHub webhook for local testing.

Usage:
    python scripts/simulate_webhook.py --event push --repo owner/repo
"""

import argparse
import hashlib
import hmac
import json
import os

import httpx


def build_payload(event: str, repo: str, branch: str, number: int) -> dict:
    sender = {"login": "octocat"}
    if event == "push":
        return {
            "ref": f"refs/heads/{branch}",
            "commits": [{"id": "abc123def456", "message": "Update README"}],
            "pusher": {"name": "octocat"},
            "compare": f"https://github.com/{repo}/compare/abc123...def456",
            "repository": {"full_name": repo},
        }
    if event == "pull_request":
        return {
            "action": "opened",
            "number": number,
            "pull_request": {
                "title": "Add feature",
                "html_url": f"https://github.com/{repo}/pull/{number}",
            },
            "sender": sender,
            "repository": {"full_name": repo},
        }
    if event == "issues":
        return {
            "action": "opened",
            "issue": {
                "number": number,
                "title": "Something is broken",
                "html_url": f"https://github.com/{repo}/issues/{number}",
            },
            "sender": sender,
            "repository": {"full_name": repo},
        }
    return {"zen": "Keep it logically awesome.", "repository": {"full_name": repo}}


def main():
    parser = argparse.ArgumentParser(description="Simulate GitHub webhook")
    parser.add_argument("--url", default="http://localhost:3000/github")
    parser.add_argument("--event", default="push", help="X-GitHub-Event value")
    parser.add_argument("--repo", required=True, help="Repository (owner/repo)")
    parser.add_argument("--branch", default="main", help="Branch name")
    parser.add_argument("--number", type=int, default=1, help="Pull request or issue number")
    parser.add_argument(
        "--secret", default=None, help="Webhook secret (or use GITHUB_SECRET env)"
    )

    args = parser.parse_args()

    secret = args.secret or os.environ.get("GITHUB_SECRET")
    if not secret:
        print("Error: Webhook secret required (--secret or GITHUB_SECRET)")
        return 1

    payload = build_payload(args.event, args.repo, args.branch, args.number)

    payload_bytes = json.dumps(payload).encode()
    signature = (
        "sha256="
        + hmac.new(
            secret.encode("utf-8"),
            payload_bytes,
            hashlib.sha256,
        ).hexdigest()
    )

    print(f"Sending {args.event} webhook to {args.url}")
    print(f"Payload: {json.dumps(payload, indent=2)}")

    response = httpx.post(
        args.url,
        content=payload_bytes,
        headers={
            "Content-Type": "application/json",
            "X-Hub-Signature-256": signature,
            "X-GitHub-Event": args.event,
        },
    )

    print(f"\nResponse status: {response.status_code}")
    print(f"Response body: {response.text}")

    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    exit(main())
