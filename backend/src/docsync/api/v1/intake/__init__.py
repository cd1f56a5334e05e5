"""Inbound mail webhooks (Microsoft Graph notifications and direct email)."""

from .router import router

__all__ = ["router"]
