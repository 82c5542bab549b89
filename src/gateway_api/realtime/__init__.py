"""Realtime WebSocket transport and the broadcaster built on it."""
