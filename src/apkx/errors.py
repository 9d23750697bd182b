"""Exception taxonomy for apkx commands.

Core code raises these and never prints; the CLI maps every ApkxError to a
single error line and exit code 1.
"""


class ApkxError(Exception):
    """Base class for all apkx failures."""

    category = "error"


class InputValidationError(ApkxError):
    """An input path is missing, unreadable or not executable."""

    category = "invalid input"

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class InvalidBundleError(ApkxError):
    """Bundle or APK set content cannot be read."""

    category = "invalid bundle"


class ValidationFailure(ApkxError):
    """A module or the whole bundle violates a packaging invariant.

    ``module_name`` is None for failures raised by bundle-wide rules.
    """

    category = "validation failed"

    def __init__(self, message: str, module_name: str | None = None, rule: str | None = None):
        super().__init__(message)
        self.message = message
        self.module_name = module_name
        self.rule = rule

    @property
    def scope(self) -> str:
        return f"module '{self.module_name}'" if self.module_name else "bundle"


class DeviceNotFoundError(ApkxError):
    """No connected device matches the request."""

    category = "device not found"


class AmbiguousDeviceError(DeviceNotFoundError):
    """More than one device is connected and none was requested."""

    category = "ambiguous device"


class IncompatibleDeviceError(ApkxError):
    """No variant of the APK set can be served to the device."""

    category = "incompatible device"


class InstallTransactionError(ApkxError):
    """The device rejected the install; the message is adb's own."""

    category = "install failed"


class CommandExecutionError(ApkxError):
    """A required tool could not be located or run."""

    category = "command failed"
