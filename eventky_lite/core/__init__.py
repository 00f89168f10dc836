"""Shared infrastructure for eventky_lite: timezone lookup and input validation."""
