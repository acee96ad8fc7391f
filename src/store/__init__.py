"""
Read-only entity store for ProviderSearch.

Holds provider collections as pandas DataFrames and answers predicate,
proximity and full-text queries against them.
"""
