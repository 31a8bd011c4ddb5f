"""
Command line interface for Sitewatch
"""
