"""Reliable event delivery: transactional outbox drain and signed webhooks."""

__version__ = "0.1.0"
