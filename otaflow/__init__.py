"""Device-side over-the-air update client.

The client asks an update server whether a newer firmware/filesystem image is
published for this device class and, when allowed, installs it and restarts.
"""

__version__ = "0.3.0"
