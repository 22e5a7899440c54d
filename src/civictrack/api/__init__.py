"""HTTP API for CivicTrack."""
