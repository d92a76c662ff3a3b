from __future__ import annotations


class ToxiproxyError(Exception):
    """Base class for every error raised by toxiclient."""


def property_name(wire_field: str) -> str:
    """``size_variation`` -> ``SizeVariation``."""
    return "".join(part.capitalize() for part in wire_field.split("_"))


class ConfigurationError(ToxiproxyError, ValueError):
    """
    A locally detected invariant violation. Never reaches the network.

    ``field`` is the property name (``Name``, ``SizeVariation``); ``wire_field``
    is the matching JSON key (``name``, ``size_variation``).
    """

    kind = "configuration"

    def __init__(self, wire_field: str, message: str = ""):
        self.wire_field = wire_field
        self.field = field = property_name(wire_field)
        self.reason = message
        text = f"Invalid {self.kind}: parameter '{field}' has an invalid value."
        if message:
            text = f"{text} {message}"
        super().__init__(text)


class ProxyConfigurationError(ConfigurationError):
    kind = "proxy configuration"


class ToxicConfigurationError(ConfigurationError):
    kind = "toxic configuration"


class UnknownToxicTypeError(ToxicConfigurationError):
    def __init__(self, toxic_type: str):
        self.toxic_type = toxic_type
        super().__init__("type", f"Unrecognized toxic type: '{toxic_type}'")


class ToxicCastError(ToxiproxyError, TypeError):
    def __init__(self, name: str, toxic_type: str, requested: type):
        self.name = name
        self.toxic_type = toxic_type
        self.requested = requested
        super().__init__(
            f"Cannot cast toxic '{name}' of type '{toxic_type}' to {requested.__name__}"
        )


class ToxiproxyConnectionError(ToxiproxyError):
    """The server could not be used for `operation` on `resource`."""

    def __init__(self, operation: str, resource: str, message: str):
        self.operation = operation
        self.resource = resource
        super().__init__(f"Failed to {operation} '{resource}': {message}")


class ServerUnreachableError(ToxiproxyConnectionError):
    pass


class UnexpectedStatusError(ToxiproxyConnectionError):
    def __init__(self, operation: str, resource: str, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        message = f"server answered {status_code}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(operation, resource, message)


class DeserializationError(ToxiproxyConnectionError):
    pass


class ConflictError(ToxiproxyError):
    def __init__(self, resource: str, message: str):
        self.resource = resource
        super().__init__(message)


class ProxyAlreadyExistsError(ConflictError):
    def __init__(self, name: str):
        super().__init__(name, f"Proxy with name '{name}' already exists")


class ToxicAlreadyExistsError(ConflictError):
    def __init__(self, proxy: str, name: str):
        self.proxy = proxy
        super().__init__(name, f"Toxic with name '{name}' already exists on proxy '{proxy}'")


class UnsupportedServerVersionError(ToxiproxyError):
    def __init__(self, version: str, minimum: str):
        self.version = version
        self.minimum = minimum
        super().__init__(
            f"Toxiproxy server version {version} is not supported. "
            f"Minimum supported version is {minimum}."
        )


class ProxyStateError(ToxiproxyError):
    """The proxy's lifecycle state does not allow the operation."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"Proxy '{name}' {message}")


class ProxyDeletedError(ProxyStateError):
    def __init__(self, name: str):
        super().__init__(name, "has been deleted")
