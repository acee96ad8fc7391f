"""
Command-line interface for ProviderSearch.
"""
