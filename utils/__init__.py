"""
Utilities Package for Healthcheck Monitor

Logging, time helpers and validators shared by every layer.
"""
