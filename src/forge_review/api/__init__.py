"""Webhook server."""
