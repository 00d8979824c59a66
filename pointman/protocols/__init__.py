"""Pointman protocols for injectable collaborators."""

from pointman.protocols.clock import Clock, SystemClock

__all__ = ["Clock", "SystemClock"]
