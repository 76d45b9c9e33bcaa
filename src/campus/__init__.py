"""
Campus Persistence Package

Database access for the campus commerce/learning platform.
"""

from . import database

__all__ = ["database"]
