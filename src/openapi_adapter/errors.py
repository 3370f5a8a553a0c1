"""
Error taxonomy for the OpenAPI adapter.

Configuration errors abort startup before any tool is served. Invocation
errors fail a single tool call and are reported back to the caller.
"""

from typing import Optional


class BridgeError(Exception):
    """Base class for every error raised by the bridge."""


class ConfigurationError(BridgeError):
    """Unrecoverable startup problem: the process must not start serving."""


class MissingDocumentUrlError(ConfigurationError):
    """No OpenAPI document location was given."""

    def __init__(self):
        super().__init__("openapi-mcp-bridge requires --json-url=<url>")


class DocumentFetchError(ConfigurationError):
    """The OpenAPI document could not be fetched or decoded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to load OpenAPI document from {url}: {reason}")


class MissingServerUrlError(ConfigurationError):
    """The document declares no servers[0].url."""

    def __init__(self):
        super().__init__(
            "openapi-mcp-bridge requires openapi schema json, no servers[0].url found in the json"
        )


class MissingPathsError(ConfigurationError):
    """The document exposes no paths."""

    def __init__(self):
        super().__init__(
            "openapi-mcp-bridge requires openapi schema json, no api paths found in the json"
        )


class MissingDescriptionError(ConfigurationError):
    """An operation resolves no description."""

    def __init__(self, path: str, method: str):
        self.path = path
        self.method = method
        super().__init__(
            "openapi-mcp-bridge requires tool description, no summary or description "
            f"found in the json for {path} {method}"
        )


class DuplicateToolNameError(ConfigurationError):
    """Two operations resolve to the same tool name."""

    def __init__(self, name: str, first: str, second: str):
        self.name = name
        self.first = first
        self.second = second
        super().__init__(
            f"openapi-mcp-bridge requires unique tool names, \"{name}\" is used by "
            f"{first} and {second}"
        )


class InvocationError(BridgeError):
    """A single tool call failed; the server keeps serving."""


class UpstreamStatusError(InvocationError):
    """The proxied API answered with an error status."""

    def __init__(self, status_code: int, body: str, url: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.url = url
        message = f"Upstream API returned HTTP {status_code}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class DispatchTimeoutError(InvocationError):
    """The proxied call did not finish before its deadline."""

    def __init__(self, url: str, timeout: float):
        self.url = url
        self.timeout = timeout
        super().__init__(f"Request to {url} timed out after {timeout}s")


class ResponseDecodeError(InvocationError):
    """The proxied API declared JSON but sent something else."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Invalid JSON response from {url}: {reason}")
