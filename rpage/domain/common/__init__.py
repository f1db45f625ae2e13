"""Pieces shared by the automation, log, output and settings domains."""

from .repository import AsyncRepository

__all__ = ["AsyncRepository"]
