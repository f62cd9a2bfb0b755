"""zinstall — recipe-driven, dependency-aware package installation."""

__version__ = "0.1.0"
