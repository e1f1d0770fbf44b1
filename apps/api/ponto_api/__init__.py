"""Ponto API - CLT timecard integrity ledger."""

__version__ = "0.1.0"
