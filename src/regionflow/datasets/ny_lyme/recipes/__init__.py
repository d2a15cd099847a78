"""Recipes for the NY Lyme dataset."""
