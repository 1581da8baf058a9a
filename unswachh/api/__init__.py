"""
Unswachh - HTTP API
"""
