"""
Prompt placement in an agent's argument vector.

A catalog entry says where the prompt goes by including a prompt flag:

    ["--json", "--prompt"]          -> ["--json", "--prompt", PROMPT]
    ["--prompt", "old", "--json"]   -> ["--prompt", PROMPT, "--json"]
    ["-p=", "--json"]               -> ["-p=PROMPT", "--json"]
    ["--json"]                      -> ["--json", PROMPT]
"""

from __future__ import annotations

from typing import Sequence

PROMPT_FLAG_PREFIXES = ("--prompt=", "-p=")
PROMPT_FLAG_TOKENS = frozenset({"--prompt", "-p"})


def build_agent_argv(original: Sequence[str], prompt: str) -> list[str]:
    argv = list(original)

    for index, token in enumerate(argv):
        prefix = next((p for p in PROMPT_FLAG_PREFIXES if token.startswith(p)), None)
        if prefix is not None:
            argv[index] = f"{prefix}{prompt}"
            return argv

        if token in PROMPT_FLAG_TOKENS:
            following = index + 1
            if following >= len(argv) or argv[following].startswith("-"):
                argv.insert(following, prompt)
            else:
                argv[following] = prompt
            return argv

    return [*argv, prompt]
