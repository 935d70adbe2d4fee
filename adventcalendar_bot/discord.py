"""Discord webhook publisher for Discord Advent Calendar Bot."""

import requests

from .logging_config import create_execution_logger


class DeliveryError(RuntimeError):
    """Raised when the webhook answers with a non-success status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Discord webhook failed: {status_code} {body}".rstrip())


class DiscordPublisher:
    """Posts announcement messages to a Discord webhook."""

    def __init__(
        self,
        webhook_url: str = "",
        timeout: int = 30,
        execution_id: str | None = None,
        session: requests.Session | None = None,
    ):
        """Initialize the publisher.

        Args:
            webhook_url: Default webhook used by send_message
            timeout: HTTP request timeout in seconds
            execution_id: Execution ID for logging context
            session: Optional pre-built requests session
        """
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.logger = create_execution_logger("discord_publisher", execution_id)
        self.session = session or requests.Session()

    def send_message(self, content: str) -> None:
        """Post a message to the configured webhook."""
        self.post(self.webhook_url, content)

    def post(self, webhook_url: str, content: str) -> None:
        """
        Send exactly one message to a webhook. No retry.

        Args:
            webhook_url: Discord webhook URL
            content: Message text

        Raises:
            DeliveryError: If the webhook returns a non-2xx status
            requests.RequestException: If the request fails in transport
        """
        self.logger.debug(
            "Sending message to Discord webhook", message_length=len(content)
        )

        response = self.session.post(
            webhook_url,
            json={"content": content},
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )

        if not response.ok:
            self.logger.error(
                f"Discord webhook returned status {response.status_code}",
                status_code=response.status_code,
            )
            raise DeliveryError(response.status_code, response.text)

        self.logger.info(
            "Message sent successfully to Discord", status_code=response.status_code
        )
