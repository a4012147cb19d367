"""
Configuration: settings loading and the relational database layer.
"""
