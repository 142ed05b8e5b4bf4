"""GrowPlate platform services: tenant resolution, authentication and feature flags."""

__version__ = "1.0.0"
