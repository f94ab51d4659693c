"""
Configuration and static vocabularies
"""
