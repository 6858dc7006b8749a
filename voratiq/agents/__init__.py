"""
Voratiq Agent Catalog

Agents are external CLIs configured entirely through the environment:

  VORATIQ_AGENT_<ID>_BINARY   path to the executable (required)
  VORATIQ_AGENT_<ID>_MODEL    model name (required)
  VORATIQ_AGENT_<ID>_ARGV     JSON array of extra arguments

<ID> is the agent id upper-cased with non-alphanumerics turned into
underscores (claude-code -> CLAUDE_CODE). Catalog order is fixed and is
the order agents appear in every run record.
"""

from __future__ import annotations

import json
import os
import shutil
from typing import Mapping

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

KNOWN_AGENT_IDS = ("claude-code", "codex", "gemini")
MODEL_PLACEHOLDER = "{{MODEL}}"
AGENT_SELECTION_VAR = "VORATIQ_AGENTS"

GEMINI_BASE_ARGV = ("generate", "--model", MODEL_PLACEHOLDER, "--prompt", "--output-format", "json")


class AgentCatalogError(Exception):
    pass


class AgentDefinition(BaseModel):
    """One configured agent. Immutable for the duration of a run."""
    model_config = ConfigDict(frozen=True)

    id: str
    model: str
    binary_path: str
    argv: list[str] = Field(default_factory=list)


def env_prefix(agent_id: str) -> str:
    normalized = "".join(ch if ch.isalnum() else "_" for ch in agent_id.upper())
    return f"VORATIQ_AGENT_{normalized}"


def load_agent_catalog(env: Mapping[str, str] | None = None) -> list[AgentDefinition]:
    """Build the agent catalog from *env* (defaults to the process environment)."""
    env = os.environ if env is None else env
    agent_ids = _selected_agent_ids(env)
    catalog = [_load_agent_definition(agent_id, env) for agent_id in agent_ids]
    logger.debug(f"[CATALOG] Loaded agents: {[a.id for a in catalog]}")
    return catalog


def _selected_agent_ids(env: Mapping[str, str]) -> list[str]:
    raw = env.get(AGENT_SELECTION_VAR, "").strip()
    if not raw:
        return list(KNOWN_AGENT_IDS)

    requested = [part.strip() for part in raw.split(",") if part.strip()]
    unknown = [agent_id for agent_id in requested if agent_id not in KNOWN_AGENT_IDS]
    if unknown:
        raise AgentCatalogError(
            f"Unknown agent id(s) in {AGENT_SELECTION_VAR}: {', '.join(unknown)} "
            f"(known: {', '.join(KNOWN_AGENT_IDS)})"
        )
    # Keep catalog order regardless of how the selection was written.
    return [agent_id for agent_id in KNOWN_AGENT_IDS if agent_id in requested]


def _load_agent_definition(agent_id: str, env: Mapping[str, str]) -> AgentDefinition:
    prefix = env_prefix(agent_id)

    binary = env.get(f"{prefix}_BINARY", "")
    if not binary and agent_id != "gemini":
        raise AgentCatalogError(
            f"Missing environment variable: {prefix}_BINARY for agent {agent_id}"
        )

    model = env.get(f"{prefix}_MODEL", "").strip()
    if not model:
        raise AgentCatalogError(
            f"Missing environment variable: {prefix}_MODEL for agent {agent_id}"
        )

    extra_argv = _parse_argv(env.get(f"{prefix}_ARGV"), agent_id, prefix)

    if agent_id == "gemini":
        binary = binary or _discover_gemini_binary(prefix)
        template = [*GEMINI_BASE_ARGV, *extra_argv]
    else:
        if MODEL_PLACEHOLDER not in extra_argv:
            raise AgentCatalogError(
                f"{prefix}_ARGV for agent {agent_id} must include the "
                f"{MODEL_PLACEHOLDER} placeholder"
            )
        template = extra_argv

    argv = [model if token == MODEL_PLACEHOLDER else token for token in template]
    return AgentDefinition(id=agent_id, model=model, binary_path=binary, argv=argv)


def _parse_argv(value: str | None, agent_id: str, prefix: str) -> list[str]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = None
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise AgentCatalogError(
            f"Invalid JSON array provided via {prefix}_ARGV for agent {agent_id}"
        )
    return parsed


def _discover_gemini_binary(prefix: str) -> str:
    found = shutil.which("gemini")
    if not found:
        raise AgentCatalogError(
            f"Unable to locate the Gemini CLI binary. Install `gemini` on PATH "
            f"or set {prefix}_BINARY."
        )
    return found
