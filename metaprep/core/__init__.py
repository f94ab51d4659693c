"""
Core models, errors and processing pipeline
"""
