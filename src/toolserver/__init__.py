"""
Model Context Protocol (MCP) tool server.

JSON-RPC envelopes, the tool registry, request routing, and the stdio and
HTTP transports that expose registered tools to an agent runtime.
"""
