"""Runtime configuration."""

from .runtime import DecisioningMethod, DecisioningSettings, get_settings

__all__ = ["DecisioningMethod", "DecisioningSettings", "get_settings"]
