"""Transports carrying JSON-RPC messages between the agent runtime and the server."""
