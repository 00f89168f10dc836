"""Recurrence parsing, expansion and display helpers for eventky_lite."""
