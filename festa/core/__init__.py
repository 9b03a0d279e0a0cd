"""
Core module initialization.
Exports configuration and error types.
"""

from festa.core.config import get_settings, Settings, EnvironmentMode
from festa.core.exceptions import FestaError

__all__ = ["get_settings", "Settings", "EnvironmentMode", "FestaError"]
