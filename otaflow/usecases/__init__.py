"""Use-case layer for update check/apply workflows.

Each module coordinates domain objects and ports without performing transport
I/O directly, preserving the ports-and-adapters boundary.
"""
