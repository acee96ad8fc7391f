"""
Matching engine for ProviderSearch.

Token matching, location and category filters, and the per-kind matchers
that run each search strategy against one provider kind.
"""
