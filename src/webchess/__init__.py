"""
WebChess package bootstrap.

Subpackages:
- interface: Adapters for HTTP, CLI, and telemetry layers.
- domain: Move-selection engine and game session rules.
- infrastructure: Configuration and session persistence.
"""

__all__ = ["interface", "domain", "infrastructure"]
