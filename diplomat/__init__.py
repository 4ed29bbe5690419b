"""Diplomat: an automated mediator for two-party conversations."""
