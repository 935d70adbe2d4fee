"""Data models for Discord Advent Calendar Bot."""

from dataclasses import dataclass
from typing import Any

NO_ENTRY_REASON = "no-entry-for-today"


@dataclass
class FeedItem:
    """Represents a single RSS item or Atom entry."""

    title: str
    link: str
    published: str | None = None  # Raw timestamp text from the feed


@dataclass
class RunOptions:
    """Per-invocation overrides for a run."""

    feed_text_override: str | None = None
    dry_run: bool | None = None  # None falls back to BotConfig.dry_run


@dataclass
class RunResult:
    """Outcome of one orchestration pass."""

    sent: bool
    day: str
    dry_run: bool = False
    count: int = 0
    reason: str | None = None

    @classmethod
    def no_entry(cls, day: str) -> "RunResult":
        return cls(sent=False, day=day, reason=NO_ENTRY_REASON)

    def to_dict(self) -> dict[str, Any]:
        """Render the JSON-like shape reported to callers."""
        if self.reason is not None:
            return {"sent": self.sent, "reason": self.reason, "day": self.day}

        return {
            "sent": self.sent,
            "dryRun": self.dry_run,
            "count": self.count,
            "day": self.day,
        }
