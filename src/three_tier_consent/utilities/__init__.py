"""Utility helpers for logging, clocks and identifiers."""

from __future__ import annotations

from .logger_manager import LoggerConfig, LoggerManager

__all__ = [
    "LoggerConfig",
    "LoggerManager",
]
