"""Configuration errors raised before any upstream call is made."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A configuration value is present but unusable."""


class MissingConfigurationError(ConfigurationError):
    """A credential or endpoint (GTA:World token, phpBB URL or key) is unset or blank."""
