"""Dapr pub/sub integration."""
