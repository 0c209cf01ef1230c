"""Domain-specific realtime payloads.

These modules should contain *payload* helpers only (build payload, maybe emit).
They must not define Socket.IO server instances or connection handlers.
"""
