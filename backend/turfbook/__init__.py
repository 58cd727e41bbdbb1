"""Turf booking backend: slot locking and booking consistency."""
