"""Errors raised by bundle operations"""


class BundleError(Exception):
    """Base error for bundle management failures."""

    pass


class BundleNotFoundError(BundleError):
    def __init__(self, name: str, kind: str = "agent"):
        super().__init__(f'{kind.capitalize()} "{name}" not found.')
        self.name = name
        self.kind = kind


class BundleNotInstalledError(BundleError):
    def __init__(self, name: str, kind: str = "agent"):
        super().__init__(f'{kind.capitalize()} "{name}" is not installed.')
        self.name = name
        self.kind = kind


class InvalidBundleNameError(BundleError):
    def __init__(self, name: str, reason: str):
        super().__init__(f'Invalid name "{name}": {reason}')
        self.name = name
        self.reason = reason


class RegistryError(BundleError):
    """Registry file could not be written."""

    pass
