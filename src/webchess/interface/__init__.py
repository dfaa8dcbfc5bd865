"""Adapters for HTTP, CLI, and telemetry layers."""
