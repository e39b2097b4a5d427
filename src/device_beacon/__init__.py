"""Device Beacon: client profile + IP geolocation collection pipeline."""

__version__ = "0.1.0"
