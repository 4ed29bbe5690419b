"""Delivery of messages to connected participants."""

from diplomat.delivery.channels import DeliveryChannel
from diplomat.delivery.hub import SessionHub

__all__ = [
    "DeliveryChannel",
    "SessionHub",
]
