"""
HTTP layer for the auth service.
"""
