"""Run orchestration: fetch, parse, filter by day, announce."""

from datetime import datetime

from .config import ANNOUNCEMENT_HEADER, BotConfig
from .dates import format_day, parse_publication_date
from .discord import DiscordPublisher
from .logging_config import create_execution_logger
from .models import FeedItem, RunOptions, RunResult
from .rss import FeedProcessor


def build_message(item: FeedItem, day: str, header: str = ANNOUNCEMENT_HEADER) -> str:
    """Format the three-line announcement for one item."""
    return "\n".join([header.format(day=day), f"• {item.title}", item.link])


def select_items_for_day(
    items: list[FeedItem], day: str, time_zone: str
) -> list[FeedItem]:
    """Keep items whose publication timestamp falls on ``day`` in ``time_zone``.

    Items without a parseable timestamp never match.
    """
    selected = []
    for item in items:
        published = parse_publication_date(item.published, time_zone)
        if published is not None and format_day(published, time_zone) == day:
            selected.append(item)
    return selected


def run_once(
    config: BotConfig,
    now: datetime,
    options: RunOptions | None = None,
    feed_processor: FeedProcessor | None = None,
    publisher: DiscordPublisher | None = None,
    execution_id: str | None = None,
) -> RunResult:
    """
    Announce today's feed entries to the Discord webhook.

    Args:
        config: Run configuration
        now: Instant treated as the current time
        options: Feed text override and dry-run switch
        feed_processor: Feed retrieval collaborator (built from config if None)
        publisher: Webhook delivery collaborator (built from config if None)
        execution_id: Execution ID for logging context

    Returns:
        RunResult describing what was (or would have been) sent

    Raises:
        ConfigurationError: If required settings are missing
        RetrievalError: If the feed download fails
        DeliveryError: If a webhook post fails; later items are not attempted
    """
    options = options or RunOptions()
    logger = create_execution_logger("runner", execution_id)

    config.validate(has_feed_override=options.feed_text_override is not None)
    dry_run = config.dry_run if options.dry_run is None else options.dry_run

    if feed_processor is None:
        feed_processor = FeedProcessor(
            timeout=config.timeout,
            execution_id=logger.execution_id,
            user_agent=config.user_agent,
        )

    if options.feed_text_override is not None:
        feed_text = options.feed_text_override
    else:
        feed_text = feed_processor.fetch_feed_text(config.feed_url)

    items = feed_processor.parse_feed(feed_text, config.feed_url or "")

    today = format_day(now, config.timezone)
    todays_items = select_items_for_day(items, today, config.timezone)

    if not todays_items:
        logger.info("No entries for today", day=today, items_count=len(items))
        return RunResult.no_entry(today)

    logger.info(
        f"Found {len(todays_items)} entries for today",
        day=today,
        items_count=len(todays_items),
    )

    if publisher is None and not dry_run:
        publisher = DiscordPublisher(
            webhook_url=config.webhook_url,
            timeout=config.timeout,
            execution_id=logger.execution_id,
        )

    for item in todays_items:
        message = build_message(item, today, config.header)
        if dry_run:
            logger.info(f"[dry-run] would post: {message}", item_title=item.title)
            continue

        publisher.post(config.webhook_url, message)
        logger.log_item_processing(item.title, "sent_to_discord")

    return RunResult(
        sent=not dry_run, dry_run=dry_run, count=len(todays_items), day=today
    )
