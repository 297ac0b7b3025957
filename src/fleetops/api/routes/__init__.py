"""Route group exports."""

from . import compliance, health, missions, routes, subcontracting

__all__ = ["health", "routes", "compliance", "missions", "subcontracting"]
