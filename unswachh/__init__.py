"""
Unswachh - civic cleanliness reporting

Geotagged photo reports, admin moderation and community voting.
"""

__version__ = "0.1.0"
