"""Ponto worker: scheduled backups and integrity checks."""
