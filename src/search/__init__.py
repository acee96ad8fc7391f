"""
Federated search for ProviderSearch.

Plans queries, fans them out across the per-kind matchers and merges the
pages into one response. Also serves typeahead suggestions and the known
locations index.
"""
