"""
devbootstrap — shared Python tooling for multi-user Linux development hosts.
"""

__version__ = "0.1.0"
