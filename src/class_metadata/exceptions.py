"""Exceptions for class-metadata."""


class MetadataError(Exception):
    """Base exception for class metadata errors."""
    pass


class ConfigurationError(MetadataError):
    """Exception raised when the metadata system is misconfigured.

    Covers a factory without loaders, mapping paths that do not exist and
    mapping documents or configuration files that cannot be parsed.
    """
    pass


class InvalidArgumentError(MetadataError, ValueError):
    """Exception raised when serialization context options are malformed."""
    pass


class CacheError(MetadataError):
    """Exception raised when cache store operations fail."""
    pass
