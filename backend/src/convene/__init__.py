"""Convene live session core."""
