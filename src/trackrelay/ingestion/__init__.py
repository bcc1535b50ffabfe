"""Ingestion layer.

This package turns decoded inbound OSC messages into normalized
:class:`trackrelay.models.TrackerUpdate` objects.
"""

__all__: list[str] = []
