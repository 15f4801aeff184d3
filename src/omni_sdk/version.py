"""Version information for Omni Python SDK"""

__version__ = "0.1.0"
