"""Typed events, runtime state and operation outcomes."""
