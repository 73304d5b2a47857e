"""ApprovalFlow: sequential multi-party document approval."""

__version__ = "0.1.0"
