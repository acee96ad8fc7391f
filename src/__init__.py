"""
ProviderSearch - Healthcare Provider Directory Search Engine

Federated search matching consumers to practitioners, clinics, pharmacies,
diagnostic labs and ambulances by free text, category filters and
geography.
"""

__version__ = "1.0.0"
__author__ = "ProviderSearch Team"
