"""Configuration management for Discord Advent Calendar Bot."""

import os
from dataclasses import dataclass

TIME_ZONE = "Asia/Tokyo"
USER_AGENT = "discord-adventcalendar-bot/1.0"
ANNOUNCEMENT_HEADER = "📅 農工大アドベントカレンダー2025: {day} の記事です！:"


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""


@dataclass
class BotConfig:
    """Configuration consumed by a single run."""

    webhook_url: str
    feed_url: str | None = None
    dry_run: bool = False
    timezone: str = TIME_ZONE
    user_agent: str = USER_AGENT
    header: str = ANNOUNCEMENT_HEADER
    timeout: int = 30

    def validate(self, has_feed_override: bool = False) -> None:
        """Check required settings before any network activity.

        Args:
            has_feed_override: True when feed text is supplied by the caller

        Raises:
            ConfigurationError: If the webhook URL, or the feed URL when no
                override is given, is missing
        """
        if not self.webhook_url or not self.webhook_url.strip():
            raise ConfigurationError("DISCORD_WEBHOOK_URL is required")

        if not has_feed_override and (not self.feed_url or not self.feed_url.strip()):
            raise ConfigurationError("RSS_FEED_URL is not configured")


class Config:
    """Main configuration manager."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.webhook_url = os.getenv("DISCORD_WEBHOOK_URL", "")
        self.webhook_secret_name = os.getenv("DISCORD_WEBHOOK_SECRET_NAME", "")
        self.feed_url = os.getenv("RSS_FEED_URL") or None
        self.dry_run = os.getenv("DRY_RUN", "") == "true"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.aws_region = os.getenv(
            "CURRENT_AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        )

    def get_bot_config(self, webhook_url: str | None = None) -> BotConfig:
        """Get run configuration.

        Args:
            webhook_url: Webhook URL resolved elsewhere (e.g. Secrets Manager),
                used instead of DISCORD_WEBHOOK_URL when given
        """
        return BotConfig(
            webhook_url=webhook_url or self.webhook_url,
            feed_url=self.feed_url,
            dry_run=self.dry_run,
        )
