"""
Chorus Mystery MCP Server
Tracks what NPCs claim, catches their lies and serves a daily deduction puzzle.
"""

import logging
import os
from datetime import datetime
from typing import Annotated, Literal

from fastmcp import FastMCP
from pydantic import Field
from shortuuid import random as shortuuid_random

from .config import load_config
from .consistency import SourceType, VerificationStatus
from .exceptions import MysteryError
from .formatting import format_case_status, format_claim_outcome, format_digest, format_result
from .llm_client import AnthropicLLMClient, LLMConfigurationError
from .puzzles import NPCActivity, NPCConversation, NPCKnowledge
from .session import MysterySession
from .storage import SessionStorage

logger = logging.getLogger("chorus-mystery")

logging.basicConfig(
    level=logging.DEBUG,
    )

SESSION_ID = "current"
DEFAULT_CASE_NAME = "The Tavern Mystery"

config = load_config()
logger.debug(f"📂 Data path: {config.data_dir.resolve()}")

storage = SessionStorage(data_dir=config.data_dir)

try:
    llm = AnthropicLLMClient(
        model=config.llm_model,
        temperature=config.temperature,
        default_max_tokens=config.max_tokens,
    )
except LLMConfigurationError as e:
    logger.warning(f"❌ {e}. Lie alerts are disabled.")
    llm = None

saved_state = storage.load(SESSION_ID)
if saved_state is not None:
    session = MysterySession.from_state(saved_state, llm=llm, config=config)
    logger.debug(f"✅ Resumed case '{session.progress.case_name}'")
else:
    session = MysterySession(SESSION_ID, DEFAULT_CASE_NAME, llm=llm, config=config)
    logger.debug(f"✅ Opened new case '{session.progress.case_name}'")

mcp = FastMCP(
    name="chorus-mystery"
)

logger.debug("✅ Server initialized, registering tools")


def _save() -> None:
    storage.save(SESSION_ID, session.to_state())


# ----------------------------------------------------------------------
# Tools
# ----------------------------------------------------------------------

@mcp.tool
async def record_claim(
    speaker: Annotated[str, Field(description="Who made the claim")],
    subject: Annotated[str, Field(description="Who or what the claim is about")],
    claim: Annotated[str, Field(description="What was said")],
    day: Annotated[int, Field(description="Game day", ge=0)],
    source_type: Annotated[
        Literal["npc", "player", "observation", "world"],
        Field(description="Kind of source"),
    ] = "npc",
    context: Annotated[str | None, Field(description="Where or how it was said")] = None,
) -> str:
    """Record a claim and check it against everything said before."""
    outcome = await session.record_claim(
        speaker, subject, claim, day, source_type=SourceType(source_type), context=context
    )
    _save()
    return format_claim_outcome(outcome)


@mcp.tool
def facts_about(
    subject: Annotated[str, Field(description="Who or what to look up")],
) -> str:
    """List everything known about a subject."""
    return session.fact_store.format_facts_about(subject)


@mcp.tool
def suspicions() -> str:
    """List the claims that don't add up."""
    return session.format_suspicions()


@mcp.tool
def resolve_fact(
    fact_id: Annotated[str, Field(description="ID of the fact")],
    verdict: Annotated[Literal["truth", "lie"], Field(description="Proven truth or proven lie")],
) -> str:
    """Settle a fact as proven truth or proven lie."""
    fact = session.fact_store.get_fact(fact_id)
    if fact is None:
        return f"❌ No fact with ID '{fact_id}'."
    session.fact_store.resolve(fact_id, VerificationStatus(verdict))
    _save()
    return f"⚖️ \"{fact.claim}\" is now marked as {verdict}."


@mcp.tool
def register_npc(
    agent: Annotated[str, Field(description="NPC name")],
    facts: Annotated[list[str] | None, Field(description="Things this NPC knows to be true")] = None,
    secrets: Annotated[list[str] | None, Field(description="Things they're hiding")] = None,
    suspicions: Annotated[list[str] | None, Field(description="Things they suspect")] = None,
    lies: Annotated[list[str] | None, Field(description="Things they might lie about")] = None,
) -> str:
    """Register what an NPC knows and would lie about."""
    session.digest.register_npc(NPCKnowledge(
        agent=agent,
        facts=facts or [],
        secrets=secrets or [],
        suspicions=suspicions or [],
        lies=lies or [],
    ))
    return f"👤 Registered {agent}."


@mcp.tool
def record_conversation(
    participants: Annotated[list[str], Field(description="NPCs in the conversation")],
    location: Annotated[str | None, Field(description="Where it happened")] = None,
    topic: Annotated[str | None, Field(description="What it was about")] = None,
    timestamp: Annotated[datetime | None, Field(description="When it happened (default: now)")] = None,
) -> str:
    """Record a conversation between NPCs while the player is away."""
    conversation = NPCConversation(
        id=f"conv_{shortuuid_random(length=10)}",
        timestamp=timestamp or datetime.now(),
        participants=participants,
        location=location,
        topic=topic,
    )
    session.digest.record_conversation(conversation)
    return f"💬 Recorded conversation between {' and '.join(participants)}."


@mcp.tool
def record_activity(
    agent: Annotated[str, Field(description="NPC who acted")],
    action: Annotated[str, Field(description="What they did, e.g. 'slipped away quietly'")],
    location: Annotated[str | None, Field(description="Where it happened")] = None,
    witnesses: Annotated[list[str] | None, Field(description="Who saw it")] = None,
    is_secret: Annotated[bool, Field(description="Was it done in secret?")] = False,
    timestamp: Annotated[datetime | None, Field(description="When it happened (default: now)")] = None,
) -> str:
    """Record something an NPC did while the player is away."""
    activity = NPCActivity(
        id=f"act_{shortuuid_random(length=10)}",
        timestamp=timestamp or datetime.now(),
        agent=agent,
        action=action,
        location=location,
        witnesses=witnesses or [],
        is_secret=is_secret,
    )
    session.digest.record_activity(activity)
    return f"🚶 Recorded: {agent} {action}."


@mcp.tool
def daily_digest() -> str:
    """Catch up on what happened while the player was away, with today's puzzle."""
    digest = session.check_for_reunion()
    _save()
    if digest is None:
        return "Nothing new to report. Come back later."
    return format_digest(digest)


@mcp.tool
def answer_puzzle(
    answer: Annotated[str, Field(description="Number of the statement you think is the lie")],
) -> str:
    """Answer today's puzzle."""
    try:
        outcome = session.answer_puzzle(answer)
    except MysteryError as e:
        return f"❌ {e.message}"
    _save()
    return format_result(outcome.result)


@mcp.tool
def case_status() -> str:
    """Show how the investigation is going."""
    return format_case_status(session.progress)


def main() -> None:
    """Main entry point for the Chorus Mystery MCP Server."""
    logger.info(f"Starting chorus-mystery server (case data in {os.path.abspath(config.data_dir)})")
    mcp.run()

if __name__ == "__main__":
    main()
