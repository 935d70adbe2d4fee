"""RSS/Atom feed retrieval and parsing for Discord Advent Calendar Bot."""

import re

import requests

from .config import USER_AGENT
from .logging_config import create_execution_logger
from .models import FeedItem

ITEM_PATTERN = re.compile(r"<item[\s\S]*?</item>", re.IGNORECASE)
ENTRY_PATTERN = re.compile(r"<entry[\s\S]*?</entry>", re.IGNORECASE)

# &amp; goes first so each reference is unescaped exactly once
ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


class RetrievalError(RuntimeError):
    """Raised when the feed download returns a non-success status."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"RSS fetch failed: {status_code} {reason}".rstrip())


def decode_entities(value: str) -> str:
    """Unescape the five predefined XML character references."""
    for entity, char in ENTITIES:
        value = value.replace(entity, char)
    return value


def extract_tag(block: str, tag: str) -> str | None:
    """Return the decoded inner text of the first <tag>...</tag>, or None."""
    name = re.escape(tag)
    match = re.search(rf"<{name}>([\s\S]*?)</{name}>", block, re.IGNORECASE)
    if not match:
        return None
    return decode_entities(match.group(1).strip()) or None


def extract_attr(block: str, tag: str, attr: str) -> str | None:
    """Return the decoded value of attr on the first matching <tag ...>, or None."""
    pattern = rf'<{re.escape(tag)}[^>]*?\s{re.escape(attr)}="([^"]+)"'
    match = re.search(pattern, block, re.IGNORECASE)
    if not match:
        return None
    return decode_entities(match.group(1).strip()) or None


def first_present(*values: str | None) -> str | None:
    """Return the first value that is not None."""
    return next((value for value in values if value is not None), None)


def parse_feed_text(xml: str) -> list[FeedItem]:
    """Parse RSS items then Atom entries, each in document order.

    Blocks lacking a title or a link are dropped.
    """
    items = []

    for match in ITEM_PATTERN.finditer(xml):
        block = match.group(0)
        title = extract_tag(block, "title")
        link = extract_tag(block, "link")
        published = first_present(
            extract_tag(block, "pubDate"),
            extract_tag(block, "dc:date"),
            extract_tag(block, "updated"),
        )
        if title and link:
            items.append(FeedItem(title=title, link=link, published=published))

    for match in ENTRY_PATTERN.finditer(xml):
        block = match.group(0)
        title = extract_tag(block, "title")
        link = first_present(
            extract_attr(block, "link", "href"),
            extract_tag(block, "link"),
        )
        published = first_present(
            extract_tag(block, "published"),
            extract_tag(block, "updated"),
            extract_tag(block, "dc:date"),
        )
        if title and link:
            items.append(FeedItem(title=title, link=link, published=published))

    return items


class FeedProcessor:
    """Handles feed download and normalization into FeedItems."""

    def __init__(
        self,
        timeout: int = 30,
        execution_id: str | None = None,
        user_agent: str = USER_AGENT,
        session: requests.Session | None = None,
    ):
        """Initialize FeedProcessor with configuration.

        Args:
            timeout: HTTP request timeout in seconds
            execution_id: Execution ID for logging context
            user_agent: User-Agent header sent with feed requests
            session: Optional pre-built requests session
        """
        self.timeout = timeout
        self.logger = create_execution_logger("feed_processor", execution_id)
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

        self.logger.debug("FeedProcessor initialized", timeout=timeout)

    def fetch_feed_text(self, feed_url: str) -> str:
        """Download the raw feed document.

        Args:
            feed_url: URL of the RSS/Atom feed

        Returns:
            Feed body as text

        Raises:
            RetrievalError: If the server answers with a non-2xx status
            requests.RequestException: If the download fails in transport
        """
        self.logger.info("Downloading feed content", feed_url=feed_url)

        try:
            response = self.session.get(feed_url, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.error(
                f"Failed to download feed {feed_url}: {e}",
                feed_url=feed_url,
                error=str(e),
            )
            raise

        if not response.ok:
            self.logger.error(
                f"Feed download returned status {response.status_code}",
                feed_url=feed_url,
                status_code=response.status_code,
            )
            raise RetrievalError(response.status_code, response.reason or "")

        # XML without a declared charset defaults to UTF-8, not ISO-8859-1
        if "charset" not in response.headers.get("Content-Type", "").lower():
            response.encoding = "utf-8"

        self.logger.info(
            "Feed downloaded successfully",
            feed_url=feed_url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return response.text

    def parse_feed(self, xml: str, feed_url: str = "") -> list[FeedItem]:
        """Parse feed text and log how many items were recognised."""
        items = parse_feed_text(xml)
        source = feed_url or "<override>"

        blocks = len(ITEM_PATTERN.findall(xml)) + len(ENTRY_PATTERN.findall(xml))
        if blocks > len(items):
            self.logger.warning(
                f"Dropped {blocks - len(items)} feed blocks without title or link",
                feed_url=source,
                dropped_count=blocks - len(items),
            )

        self.logger.log_feed_processing(source, len(items))
        return items
