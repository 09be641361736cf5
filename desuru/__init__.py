"""desuru - single-host deployment for JavaScript projects"""

__version__ = "1.0.0"
