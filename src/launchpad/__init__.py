"""Launchpad: provision, build and roll out a service stack in one run."""

__version__ = "0.1.0"
