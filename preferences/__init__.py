"""Preferences stored in naming text records and their resolution."""

from .models import DefaultAction, Profile, RiskTolerance, UserPreferences
from .resolver import PreferenceResolver

__all__ = ["DefaultAction", "Profile", "PreferenceResolver", "RiskTolerance", "UserPreferences"]
