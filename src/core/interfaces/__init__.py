"""Contracts (Protocol) implemented by concrete adapters.

Lets the launcher depend on an abstraction of process spawning, so tests
can substitute a fake without touching global state.
"""
