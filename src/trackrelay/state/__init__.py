"""State/store layer.

This package is the single source of truth for the last known pose of
every tracker. Only the pipeline's update worker writes to it; any number
of readers may query it concurrently.
"""
