"""HRVSense: heart-rate variability from health-store history and a companion wearable."""

__version__ = "0.1.0"
