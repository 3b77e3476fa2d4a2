"""Presentation Layer – API REST y WebSocket hacia la UI."""
