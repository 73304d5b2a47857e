"""Outbound services for ApprovalFlow."""

from .notifications import WebhookEventSink

__all__ = ["WebhookEventSink"]
