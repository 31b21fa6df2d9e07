"""
Typed wrappers around the skill sync API endpoints.
"""
