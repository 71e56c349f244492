"""Crosslink application package."""
