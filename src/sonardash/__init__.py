"""Terminal client for SonarQube-style code-quality servers."""

__version__ = "0.1.0"
