"""
Configuration management for the file server.

Contains the Pydantic settings and the mode-aware defaults that work across
local-dev, aws-mock, and aws-prod deployment modes.
"""
