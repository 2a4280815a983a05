"""Pull request maturity scoring for GitHub change requests."""

__version__ = "0.1.0"
