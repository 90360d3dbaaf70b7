"""Shared math helpers for the exporter."""
