"""Capture, submit and browse field service tasks."""

__version__ = '0.1.0'
