"""Application composition layer.

Modules in this package load configuration and wire adapters and use cases
into a runnable update client without placing update logic here.
"""
