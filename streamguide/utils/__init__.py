"""Utility helpers for StreamGuide."""
