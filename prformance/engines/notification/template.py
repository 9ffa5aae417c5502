"""Discord message rendering for contribution reports."""

from __future__ import annotations

import random

from prformance.engines.contribution_collector.models import ContributorProfile, Report

MAX_MESSAGE_LENGTH = 1950
TRUNCATION_MARKER = "...\n(message truncated)"
TOP_N = 10

_MEDALS = ("🥇", "🥈", "🥉")
_OTHER_MEDAL = "🔸"

_INTROS = (
    "🎭 Ladies and gentlemen, the code champions are on stage!",
    "🎪 Welcome to the arena where the real Git heroes shine!",
    "🎯 The battle was fierce, the commits were many, and here are the winners!",
    "🧙‍♂️ The keyboard wizards worked hard and here is the magic!",
    "🦸‍♀️ Which super dev came out on top? Find out now!",
)

_OUTROS = (
    "🎉 **Congratulations everyone!** See you at the next ranking!",
    "⏰ **The race goes on!** Who will be the next champion?",
    "🚀 **Code, coffee and persistence!** See you next time!",
)

NO_DEVELOPERS_MESSAGE = "🔍 **No developers found in this period!**"


def medal(position: int) -> str:
    """Medal for a zero-based ranking position."""
    return _MEDALS[position] if position < len(_MEDALS) else _OTHER_MEDAL


def _summary_lines(dev: ContributorProfile) -> list[str]:
    first = [
        f"{icon} {dev.count(kind)} {label}"
        for icon, kind, label in (
            ("📝", "commits", "commits"),
            ("🔀", "pull_requests_opened", "PRs"),
            ("👀", "pull_requests_reviewed", "reviews"),
        )
        if dev.count(kind) > 0
    ]
    second = [
        f"{icon} {dev.count(kind)} {label}"
        for icon, kind, label in (
            ("🐛", "issues_opened", "issues"),
            ("✅", "issues_closed", "closed"),
            ("💬", "pr_comments", "comments"),
            ("🌿", "branches_created", "branches"),
        )
        if dev.count(kind) > 0
    ]
    return [" | ".join(parts) for parts in (first, second) if parts]


def format_discord_message(report: Report, *, rng: random.Random | None = None) -> str:
    """Render the top contributors of *report* as a Discord message.

    The result never exceeds ``MAX_MESSAGE_LENGTH`` plus the truncation marker,
    which keeps it under Discord's 2000 character limit.
    """
    if not report.developers:
        return NO_DEVELOPERS_MESSAGE

    rng = rng or random.Random()
    window = report.window
    lines = [
        "# 🏆 Performance Ranking",
        f"## {window.start.isoformat()} to {window.end.isoformat()}",
        "",
        rng.choice(_INTROS),
        "",
    ]

    for position, dev in enumerate(report.developers[:TOP_N]):
        heading = f"{medal(position)} {position + 1}. {dev.username} ({dev.score:g} pts)"
        lines.append(f"### {heading}" if position < len(_MEDALS) else f"**{heading}**")
        lines.extend(_summary_lines(dev))
        lines.append("")

    remaining = len(report.developers) - TOP_N
    if remaining > 0:
        lines.append(f"_...and {remaining} more devs. Keep coding!_ 💪")
        lines.append("")

    lines.append(rng.choice(_OUTROS))
    message = "\n".join(lines) + "\n"

    if len(message) > MAX_MESSAGE_LENGTH:
        message = message[:MAX_MESSAGE_LENGTH] + TRUNCATION_MARKER
    return message


def format_ranking(report: Report) -> list[str]:
    """Plain console ranking lines for the top contributors."""
    return [
        f"{medal(position)} {position + 1}. {dev.username} - {dev.score:g} points"
        for position, dev in enumerate(report.developers[:TOP_N])
    ]
