"""Telemetry and settings shared by every layer."""
