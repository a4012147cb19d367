"""
Availability fetching, parsing, change detection and polling.
"""
