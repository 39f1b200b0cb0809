"""Clients for the read-only external users directory."""
