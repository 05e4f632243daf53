"""Ingestion layer.

Converts wire payloads (live feed snapshots, GTFS JSON tables) into
validated models. Nothing here mutates engine state.
"""
