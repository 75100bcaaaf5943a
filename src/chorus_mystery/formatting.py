"""Plain-text renderings of session results for the MCP tools."""

from .puzzles import CaseProgress, DailyDigest, PuzzleResult, SpotTheLieContent
from .session import ClaimOutcome


def format_claim_outcome(outcome: ClaimOutcome) -> str:
    """Tool output for a recorded claim."""
    fact = outcome.fact
    lines = [f"📝 Recorded {fact.id}: \"{fact.claim}\" about {fact.subject} ({fact.status.value})"]
    if outcome.contradictions:
        lines.append(f"⚠️ Conflicts with {len(outcome.contradictions)} earlier claim(s):")
        for contradiction in outcome.contradictions:
            lines.append(f"  - {contradiction.description}")
    if outcome.alert is not None:
        lines.append("")
        lines.append(f"🤔 {outcome.alert.gut_feeling}")
    return "\n".join(lines)


def format_digest(digest: DailyDigest) -> str:
    """Tool output for a daily digest and its puzzle."""
    lines = [f"📰 While you were away ({digest.date})", "", digest.summary]
    if digest.events:
        lines.append("")
        lines.extend(f"- {event.description}" for event in digest.events)

    content = digest.puzzle.content
    if isinstance(content, SpotTheLieContent):
        lines.append("")
        lines.append("🧩 Spot the lie. Which of these is false?")
        for number, statement in enumerate(content.statements, start=1):
            lines.append(f"{number}. {statement.speaker}: \"{statement.statement}\"")
    return "\n".join(lines)


def format_result(result: PuzzleResult) -> str:
    """Tool output for an answered puzzle."""
    if result.correct:
        lines = [f"✅ Correct! +{result.points_earned} point(s)"]
        if result.revelation:
            lines.append(result.revelation)
    else:
        lines = ["❌ Not quite."]
        if result.consequence:
            lines.append(result.consequence)
        if result.streak_broken:
            lines.append("Your streak is broken.")

    lines.append(f"Case progress: {result.new_total} points ({result.progress_percent:.0f}%)")
    if result.case_solved:
        lines.append("🎉 The case is solved!")
    else:
        lines.append(
            f"Next puzzle: {result.next_puzzle_available.strftime('%Y-%m-%d %H:%M')}"
        )
    return "\n".join(lines)


def format_case_status(progress: CaseProgress) -> str:
    """Tool output for the case overview."""
    percent = min(100.0, progress.progress_points / progress.points_to_solve * 100)
    lines = [
        f"🔎 {progress.case_name} ({progress.status.value})",
        f"Progress: {progress.progress_points}/{progress.points_to_solve} ({percent:.0f}%)",
        f"Puzzles solved: {progress.puzzles_solved}, failed: {progress.puzzles_failed}",
        f"Streak: {progress.current_streak} (best {progress.longest_streak})",
    ]
    if progress.todays_puzzle is not None:
        lines.append("🧩 Today's puzzle is waiting for an answer.")
    return "\n".join(lines)



__all__ = [
    "format_claim_outcome",
    "format_digest",
    "format_result",
    "format_case_status",
]
