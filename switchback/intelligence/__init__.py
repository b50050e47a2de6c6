"""Spell checking backends."""
