"""CivicTrack: civic issue reporting, lifecycle tracking and geo discovery."""

__version__ = "0.1.0"
