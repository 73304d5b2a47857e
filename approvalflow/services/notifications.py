"""Webhook delivery of workflow events.

Posts each event as JSON to a single configured endpoint. Delivery is
fire-and-forget: failures are logged and never reach the workflow caller.
"""

import logging
from typing import Optional, Dict, Any

import httpx

from approvalflow.core.config import Settings
from approvalflow.core.workflow.events import EventSink, WorkflowEvent, event_to_dict

logger = logging.getLogger(__name__)


class WebhookEventSink(EventSink):
    """
    Event sink that POSTs events to a webhook URL.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        token: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the webhook sink.

        Args:
            url: Endpoint receiving the events
            timeout: Request timeout in seconds
            token: Optional bearer token sent in the Authorization header
            client: Preconfigured client, mainly for tests
        """
        self.url = url
        self.token = token
        self.client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["WebhookEventSink"]:
        """Build a sink from settings, or None when no webhook is configured."""
        if not settings.webhook_url:
            return None
        return cls(settings.webhook_url, timeout=settings.webhook_timeout, token=settings.webhook_token)

    def emit(self, event: WorkflowEvent) -> None:
        payload = event_to_dict(event)
        try:
            self._deliver(payload)
        except httpx.HTTPError:
            logger.exception(
                "Failed to deliver %s for document %d to %s",
                event.event_type, event.document_id, self.url,
            )
            return
        logger.debug("Delivered %s for document %d", event.event_type, event.document_id)

    def close(self) -> None:
        self.client.close()

    def _deliver(self, payload: Dict[str, Any]) -> None:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        response = self.client.post(self.url, json=payload, headers=headers)
        response.raise_for_status()
