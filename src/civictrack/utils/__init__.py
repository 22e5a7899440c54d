"""Utility helpers for CivicTrack."""
