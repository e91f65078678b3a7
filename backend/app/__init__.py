"""Convene backend application."""
