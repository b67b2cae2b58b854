"""
v0rho: Lambda V0 QA and UPC rho(770) reconstruction tasks

Per-collision selection, reconstruction and histogramming of
- Lambda / anti-Lambda V0 candidates (with jet-track QA)
- exclusive pi+ pi- (and 4pi / 6pi) systems in ultra-peripheral collisions
"""

__version__ = "0.1.0"
