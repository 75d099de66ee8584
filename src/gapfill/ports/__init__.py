"""Ports - interfaces for external dependencies."""
