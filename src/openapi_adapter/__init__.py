"""
OpenAPI to MCP adapter.

Derives one MCP tool per OpenAPI operation and proxies each tool call to the
operation it came from.
"""

from .bootstrap import bootstrap_from_url, build_handlers, fetch_document, validate_document
from .dispatcher import HttpToolHandler, classify_response
from .errors import ConfigurationError, InvocationError
from .schema_translator import translate_body, translate_parameter, translate_schema
from .tool_deriver import derive_tools

__all__ = [
    "bootstrap_from_url",
    "build_handlers",
    "fetch_document",
    "validate_document",
    "HttpToolHandler",
    "classify_response",
    "ConfigurationError",
    "InvocationError",
    "translate_body",
    "translate_parameter",
    "translate_schema",
    "derive_tools",
]
