"""
Inverted full-text index for ProviderSearch.

Whole-word index over the text fields a collection declares. A search
scores each row by how many query-term occurrences it contains; any
matching term is enough (OR semantics), like a document-store $text query.
"""

import logging
from collections import defaultdict
from typing import Dict, List
import pandas as pd

from .predicates import column_values

logger = logging.getLogger(__name__)


def extract_tokens(text: str) -> List[str]:
    """
    Extract index tokens from text.

    Args:
        text: Input text

    Returns:
        Lowercase alphanumeric tokens of two or more characters
    """
    if not text or not isinstance(text, str):
        return []

    tokens = []
    for token in text.lower().split():
        clean_token = "".join(c for c in token if c.isalnum())
        if len(clean_token) >= 2:
            tokens.append(clean_token)

    return tokens


class InvertedTextIndex:
    """
    Token -> row postings for one collection.

    Built once from a flattened collection DataFrame; the store is
    read-only so the index never needs updating.
    """

    def __init__(self, df: pd.DataFrame, fields: List[str]):
        """
        Build the index.

        Args:
            df: Flattened collection DataFrame
            fields: Dotted paths of the indexed text fields
        """
        self.fields = list(fields)
        self.postings: Dict[str, Dict[int, int]] = defaultdict(dict)

        for field in self.fields:
            values = column_values(df, field)
            for row_label, value in values.items():
                texts = value if isinstance(value, (list, tuple)) else [value]
                for text in texts:
                    for token in extract_tokens(text):
                        row_postings = self.postings[token]
                        row_postings[row_label] = row_postings.get(row_label, 0) + 1

        logger.info(f"Built text index over {self.fields} with {len(self.postings)} terms")

    def search(self, text: str) -> pd.Series:
        """
        Score rows against a free-text query.

        Args:
            text: Raw query text

        Returns:
            Series of scores indexed by row label, best first; empty when
            no term matches
        """
        scores: Dict[int, int] = defaultdict(int)
        for token in set(extract_tokens(text)):
            for row_label, count in self.postings.get(token, {}).items():
                scores[row_label] += count

        if not scores:
            return pd.Series(dtype=float)

        return pd.Series(scores, dtype=float).sort_values(ascending=False, kind="mergesort")
