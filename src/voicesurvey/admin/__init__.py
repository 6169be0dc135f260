"""
Read-only administrative endpoints.
"""
