"""Custom exception types for the PR maturity scorer."""


class PRMaturityError(Exception):
    """Base exception for all PR maturity scorer errors."""


class ConfigurationError(PRMaturityError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(ConfigurationError):
    """Raised when the GitHub access token is unavailable."""


class UpstreamFetchError(PRMaturityError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class DataValidationError(PRMaturityError):
    """Raised when API payloads are missing fields required for scoring."""
