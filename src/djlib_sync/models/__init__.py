"""Data models for the DJ library sync tool."""

from .models import EnergyColourMapping

__all__ = ["EnergyColourMapping"]
