"""Exception hierarchy."""


class CpconfigError(Exception):
    """Base exception class"""


class ConfigValidationError(CpconfigError, ValueError):
    """Declared file map is malformed; raised before any file is touched"""


class ConfigSourceError(CpconfigError):
    """Manifest could not be located, read, or turned into a file map"""
