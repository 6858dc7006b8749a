"""The exact text handed to an agent on stdin (and via its prompt flag)."""

from __future__ import annotations

WORKSPACE_SUMMARY_FILENAME = ".summary.txt"

_INSTRUCTIONS = [
    "Instructions:",
    "- Edit files inside this workspace only.",
    f"- Write a one- or two-sentence summary to {WORKSPACE_SUMMARY_FILENAME} in the workspace root.",
    "- The first line of the summary is used as the commit subject.",
    "- Do not run git commands or modify repository metadata.",
    "- Exit after completing the work.",
]


def build_agent_prompt(spec_content: str) -> str:
    lines = [
        "Implement the following specification:",
        "",
        spec_content.rstrip(),
        "",
        *_INSTRUCTIONS,
    ]
    return "\n".join(lines) + "\n"
