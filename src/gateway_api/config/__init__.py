"""
Configuration management for the gateway.

Contains the pydantic settings object and the cached accessor used by the
application factory and the CLI.
"""
