"""Actify semantic retrieval core."""
