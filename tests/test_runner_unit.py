"""Unit tests for the run orchestrator."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
import requests

from adventcalendar_bot.config import BotConfig, ConfigurationError
from adventcalendar_bot.discord import DeliveryError, DiscordPublisher
from adventcalendar_bot.models import FeedItem, RunOptions
from adventcalendar_bot.rss import FeedProcessor, RetrievalError
from adventcalendar_bot.runner import build_message, run_once, select_items_for_day

JST = timezone(timedelta(hours=9))
WEBHOOK_URL = "https://example.com/webhook"
FEED_URL = "https://example.com/feed"

SAMPLE_FEED_WITH_MULTIPLE_SAME_DAY = """<?xml version="1.0" encoding="UTF-8"?>
<feed xml:lang="ja-JP" xmlns="http://www.w3.org/2005/Atom">
  <id>tag:qiita.com,2012:/advent-calendar/2025/tuat/feed</id>
  <link rel="alternate" type="text/html" href="https://qiita.com"/>
  <link rel="self" type="application/atom+xml" href="https://qiita.com/advent-calendar/2025/tuat/feed"/>
  <title>農工大 Advent Calendarの記事 - Qiita</title>
  <updated>2025-12-17T07:26:38+09:00</updated>
  <entry>
    <id>tag:qiita.com,2012:Public::AdventCalendar::CalendarItem/210090</id>
    <published>2025-12-17T07:26:38+09:00</published>
    <updated>2025-12-17T07:27:30+09:00</updated>
    <link rel="alternate" type="text/html" href="https://qiita.com/s252151u/items/351e671333541251e16d"/>
    <title>JAXのJITコンパイルの挙動を完全に理解した</title>
    <content type="text">未熟な点があるかもしれません...</content>
  </entry>
  <entry>
    <id>tag:qiita.com,2012:Public::AdventCalendar::CalendarItem/212910</id>
    <published>2025-12-17T00:00:00+09:00</published>
    <updated>2025-12-16T18:59:50+09:00</updated>
    <link rel="alternate" type="text/html" href="https://blog.ojii3.dev/2025-12-17-0/"/>
    <title>gwq を nix で入れる</title>
    <content type="text">External article</content>
  </entry>
  <entry>
    <id>tag:qiita.com,2012:Public::AdventCalendar::CalendarItem/204635</id>
    <published>2025-12-16T07:05:44+09:00</published>
    <updated>2025-12-16T07:05:44+09:00</updated>
    <link rel="alternate" type="text/html" href="https://qiita.com/s217969w/items/49198f1806c73f684adb"/>
    <title>【競プロ】すべてのDP問題に対しメモ化再帰を使ってきた話</title>
    <content type="text">農工大アドカレ16日目です！...</content>
  </entry>
</feed>"""


def make_response(status_code, body=""):
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    return response


def override(dry_run=False):
    return RunOptions(
        feed_text_override=SAMPLE_FEED_WITH_MULTIPLE_SAME_DAY, dry_run=dry_run
    )


class TestRunOnceUnit:
    """Unit tests for run_once."""

    def setup_method(self):
        """Set up configuration and a recording publisher."""
        self.config = BotConfig(webhook_url=WEBHOOK_URL, feed_url=FEED_URL)
        self.posted = []
        self.publisher = Mock()
        self.publisher.post.side_effect = lambda url, content: self.posted.append(
            (url, content)
        )

    def test_multiple_articles_on_the_same_day(self):
        now = datetime(2025, 12, 17, 12, 0, tzinfo=JST)

        result = run_once(self.config, now, override(), publisher=self.publisher)

        assert len(self.posted) == 2
        assert self.posted[0][0] == WEBHOOK_URL
        assert "JAXのJITコンパイルの挙動を完全に理解した" in self.posted[0][1]
        assert "gwq を nix で入れる" in self.posted[1][1]
        assert result.to_dict() == {
            "sent": True,
            "dryRun": False,
            "count": 2,
            "day": "2025-12-17",
        }

    def test_single_article_for_a_day(self):
        now = datetime(2025, 12, 16, 12, 0, tzinfo=JST)

        result = run_once(self.config, now, override(), publisher=self.publisher)

        assert len(self.posted) == 1
        assert (
            "【競プロ】すべてのDP問題に対しメモ化再帰を使ってきた話" in self.posted[0][1]
        )
        assert result.sent is True
        assert result.count == 1
        assert result.day == "2025-12-16"

    def test_no_entry_for_today(self):
        now = datetime(2025, 12, 18, 12, 0, tzinfo=JST)

        result = run_once(self.config, now, override(), publisher=self.publisher)

        assert self.posted == []
        assert result.to_dict() == {
            "sent": False,
            "reason": "no-entry-for-today",
            "day": "2025-12-18",
        }

    def test_day_is_evaluated_in_tokyo(self):
        # 2025-12-16T16:00Z is 2025-12-17 01:00 in Tokyo
        now = datetime(2025, 12, 16, 16, 0, tzinfo=timezone.utc)

        result = run_once(self.config, now, override(), publisher=self.publisher)

        assert result.day == "2025-12-17"
        assert result.count == 2

    def test_dry_run_posts_nothing(self, caplog):
        now = datetime(2025, 12, 17, 12, 0, tzinfo=JST)

        with caplog.at_level("INFO"):
            result = run_once(
                self.config, now, override(dry_run=True), publisher=self.publisher
            )

        self.publisher.post.assert_not_called()
        assert result.to_dict() == {
            "sent": False,
            "dryRun": True,
            "count": 2,
            "day": "2025-12-17",
        }
        assert "[dry-run] would post:" in caplog.text

    def test_dry_run_falls_back_to_configuration(self):
        self.config.dry_run = True
        now = datetime(2025, 12, 17, 12, 0, tzinfo=JST)

        result = run_once(
            self.config,
            now,
            RunOptions(feed_text_override=SAMPLE_FEED_WITH_MULTIPLE_SAME_DAY),
            publisher=self.publisher,
        )

        self.publisher.post.assert_not_called()
        assert result.dry_run is True
        assert result.sent is False

    def test_delivery_failure_aborts_remaining_items(self):
        session = Mock()
        session.post.return_value = make_response(500, "boom")
        publisher = DiscordPublisher(webhook_url=WEBHOOK_URL, session=session)
        now = datetime(2025, 12, 17, 12, 0, tzinfo=JST)

        with pytest.raises(DeliveryError) as exc_info:
            run_once(self.config, now, override(), publisher=publisher)

        assert exc_info.value.status_code == 500
        assert session.post.call_count == 1

    def test_partial_delivery_keeps_earlier_posts(self):
        def post(url, content):
            if self.posted:
                raise DeliveryError(502, "bad gateway")
            self.posted.append(content)

        self.publisher.post.side_effect = post
        now = datetime(2025, 12, 17, 12, 0, tzinfo=JST)

        with pytest.raises(DeliveryError):
            run_once(self.config, now, override(), publisher=self.publisher)

        assert len(self.posted) == 1
        assert "JAXのJITコンパイル" in self.posted[0]

    def test_fetches_feed_when_no_override(self):
        feed_processor = FeedProcessor(session=Mock(headers={}))
        feed_processor.session.get.return_value = make_response(
            200, SAMPLE_FEED_WITH_MULTIPLE_SAME_DAY
        )
        now = datetime(2025, 12, 16, 12, 0, tzinfo=JST)

        result = run_once(
            self.config, now, feed_processor=feed_processor, publisher=self.publisher
        )

        feed_processor.session.get.assert_called_once_with(FEED_URL, timeout=30)
        assert result.count == 1

    def test_retrieval_failure_propagates(self):
        feed_processor = Mock()
        feed_processor.fetch_feed_text.side_effect = RetrievalError(404, "Not Found")
        now = datetime(2025, 12, 16, 12, 0, tzinfo=JST)

        with pytest.raises(RetrievalError):
            run_once(
                self.config, now, feed_processor=feed_processor, publisher=self.publisher
            )

        self.publisher.post.assert_not_called()

    def test_missing_webhook_fails_before_network(self):
        config = BotConfig(webhook_url="", feed_url=FEED_URL)
        feed_processor = Mock()

        with pytest.raises(ConfigurationError):
            run_once(
                config,
                datetime(2025, 12, 17, tzinfo=JST),
                feed_processor=feed_processor,
                publisher=self.publisher,
            )

        feed_processor.fetch_feed_text.assert_not_called()

    def test_missing_feed_url_without_override_fails(self):
        config = BotConfig(webhook_url=WEBHOOK_URL, feed_url=None)

        with pytest.raises(ConfigurationError, match="RSS_FEED_URL"):
            run_once(config, datetime(2025, 12, 17, tzinfo=JST), publisher=self.publisher)

    def test_missing_feed_url_with_override_is_allowed(self):
        config = BotConfig(webhook_url=WEBHOOK_URL, feed_url=None)
        now = datetime(2025, 12, 16, 12, 0, tzinfo=JST)

        result = run_once(config, now, override(), publisher=self.publisher)

        assert result.count == 1


class TestMessageFormattingUnit:
    """Unit tests for message building and day filtering."""

    def test_build_message_three_lines(self):
        item = FeedItem(title="Title", link="https://example.com/a")

        message = build_message(item, "2025-12-17")

        assert message.split("\n") == [
            "📅 農工大アドベントカレンダー2025: 2025-12-17 の記事です！:",
            "• Title",
            "https://example.com/a",
        ]

    def test_build_message_custom_header(self):
        item = FeedItem(title="Title", link="https://example.com/a")

        message = build_message(item, "2025-12-01", header="Day {day}")

        assert message == "Day 2025-12-01\n• Title\nhttps://example.com/a"

    def test_items_without_timestamp_never_match(self):
        items = [
            FeedItem(title="No date", link="https://a"),
            FeedItem(title="Garbage", link="https://b", published="soon"),
            FeedItem(title="Dated", link="https://c", published="2025-12-17T09:00:00+09:00"),
        ]

        selected = select_items_for_day(items, "2025-12-17", "Asia/Tokyo")

        assert [item.title for item in selected] == ["Dated"]
