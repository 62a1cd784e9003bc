"""Core services for a media hub: settings, skins, JSON-RPC, service discovery and metrics."""

__version__ = "0.1.0"