"""Scouting data server: configurable forms, role-gated storage, sortable tables."""

__version__ = "1.0.0"
