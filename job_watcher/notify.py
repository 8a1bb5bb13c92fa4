"""
Notify module for the Job Watcher pipeline.

Posts the digest payload to a Discord webhook. Delivery problems are never
raised: a non-success response or a transport error is logged with as much
detail as the response offers and reported back as a failed NotifyResult.
There is no retry.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from job_watcher.utils import get_logger


# Module logger
logger = get_logger("notify")

DEFAULT_TIMEOUT = 30  # seconds
USER_AGENT = "JobWatcher/1.0"


@dataclass
class NotifyResult:
    """
    Outcome of a single notification attempt.

    Attributes:
        ok: Whether the webhook accepted the payload.
        status_code: HTTP status code if a response was received.
        detail: Response body (parsed JSON or raw text) or error message
            when the attempt failed.
    """
    ok: bool
    status_code: Optional[int] = None
    detail: Any = None


def create_webhook_session() -> requests.Session:
    """Create a requests session for posting JSON to the webhook."""
    session = requests.Session()
    session.headers.update({
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    })
    return session


def read_error_detail(response: requests.Response) -> Any:
    """
    Extract diagnostic detail from a failed response.

    Args:
        response: Response object from the webhook.

    Returns:
        Parsed JSON body if the body is JSON, otherwise the raw text.
    """
    try:
        return response.json()
    except ValueError:
        return response.text


class DiscordNotifier:
    """Notifier adapter posting payloads to a Discord webhook URL."""

    def __init__(
        self,
        webhook_url: str,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT
    ):
        self.webhook_url = webhook_url
        self.session = session or create_webhook_session()
        self.timeout = timeout

    def send(self, payload: Dict[str, Any]) -> NotifyResult:
        """
        Post a payload to the webhook.

        Args:
            payload: Dictionary with 'content' and 'embeds' keys.

        Returns:
            NotifyResult; ok is True for any 2xx status.
        """
        logger.debug(f"Posting payload with {len(payload.get('embeds', []))} embed(s)")

        try:
            response = self.session.post(
                self.webhook_url,
                data=json.dumps(payload),
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Webhook request failed: {e}")
            return NotifyResult(ok=False, detail=str(e))

        if 200 <= response.status_code < 300:
            logger.info(f"Webhook accepted payload (HTTP {response.status_code})")
            return NotifyResult(ok=True, status_code=response.status_code)

        detail = read_error_detail(response)
        logger.error(f"Webhook rejected payload (HTTP {response.status_code}): {detail}")
        return NotifyResult(ok=False, status_code=response.status_code, detail=detail)

    def close(self) -> None:
        self.session.close()
