"""
Data ingestion for ProviderSearch.

Loads directory collections from local files into the entity store.
"""
