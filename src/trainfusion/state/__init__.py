"""State layer.

Holds the per-trip live state fed by the snapshot handler and read by the
recompute loop, plus the typed events that flow between them.
"""
