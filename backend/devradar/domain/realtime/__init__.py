"""Realtime gateway: Socket.IO namespace and per-connection outboxes."""
