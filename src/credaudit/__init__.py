"""Credential breach auditing: batched breach lookups and risk scoring."""

__version__ = "1.0.0"
