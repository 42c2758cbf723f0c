# filevault/core/errors.py
"""Error kinds raised by the services and translated at the route boundary."""


class VaultError(Exception):
    """Base class; ``str(exc)`` is safe to show to the user."""


class ValidationError(VaultError):
    """Bad input: duplicate username, password mismatch, missing keyword..."""


class AuthError(VaultError):
    """Unknown user or wrong password."""


class StoreError(VaultError):
    """The database or the file store could not complete the operation."""


class NotFound(VaultError):
    """Requested file does not exist."""
