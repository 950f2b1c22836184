"""Core layer: configuration, exceptions, logging and resilience primitives."""
