"""Domain-specific errors for the Hue MQTT bridge."""


class HueBridgeError(Exception):
    """Base error for the bridge."""


class ConfigurationError(HueBridgeError):
    """Raised when a required setting (bridge address, auth token) is missing."""


# ===== Transport errors =====

class TransportError(HueBridgeError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when the bridge hardware cannot be reached."""


class AuthenticationError(TransportError):
    """Raised when the bridge rejects the supplied token."""


class DeviceCommError(TransportError):
    """Raised when a transport call fails for an otherwise valid command."""


class NotAuthorizedYet(TransportError):
    """Raised while the bridge link button has not been pressed."""


# ===== Command errors (dispatch-time, never fatal) =====

class CommandError(HueBridgeError):
    """Base error for a single rejected command."""


class ValidationError(CommandError):
    """Raised when a command payload cannot be parsed or is out of range."""


class UnknownDeviceError(CommandError):
    """Raised when a command names a device id that is not registered."""


class UnknownAttributeError(CommandError):
    """Raised when a command names an attribute the device does not expose."""


class UnsupportedOperationError(CommandError):
    """Raised when a command targets a read-only attribute."""


# ===== Startup errors =====

class DuplicateDeviceError(HueBridgeError):
    """Raised when enumeration yields two devices with the same id."""
