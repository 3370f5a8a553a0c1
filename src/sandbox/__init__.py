"""Static tool binding for the code sandbox HTTP API."""

from .tools import SANDBOX_TOOLS, SandboxToolHandler, build_sandbox_handlers

__all__ = ["SANDBOX_TOOLS", "SandboxToolHandler", "build_sandbox_handlers"]
