"""
API layer schemas for the Blacklist Registry.
"""
