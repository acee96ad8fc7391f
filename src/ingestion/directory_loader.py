"""
Directory data loader for ProviderSearch.

Loads provider and category collections from a local directory into an
in-memory entity store. One file per collection, named after it
(``doctors.json``, ``clinics.csv``, ``pathology.parquet``, ...).
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import pandas as pd

from ..search.kinds import CATEGORY_COLLECTION, KIND_TABLE, text_index_fields
from ..store.entity_store import DataFrameEntityStore

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = (".json", ".jsonl", ".csv", ".parquet")


def known_collections() -> List[str]:
    return [spec.collection for spec in KIND_TABLE.values()] + [CATEGORY_COLLECTION]


def load_collection_file(path: Union[str, Path]) -> Union[pd.DataFrame, List[Dict[str, Any]]]:
    """
    Load a single collection file.

    JSON files may hold an array of documents or one document per line;
    nested documents are kept as-is. CSV and Parquet files are flat, with
    dotted column names for nested fields (``address.city``); list-valued
    fields such as coordinates only survive in JSON or Parquet.

    Args:
        path: File path

    Returns:
        List of records (JSON) or DataFrame (CSV/Parquet)
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".csv":
        df = pd.read_csv(path)
    elif suffix == ".parquet":
        df = pd.read_parquet(path)
    elif suffix in (".json", ".jsonl"):
        with open(path, 'r') as f:
            text = f.read().strip()
        if not text:
            return []
        if text.startswith("["):
            records = json.loads(text)
        else:
            records = [json.loads(line) for line in text.splitlines() if line.strip()]
        logger.info(f"Loaded {len(records)} records from {path}")
        return records
    else:
        raise ValueError(f"Unsupported file format: {path}")

    logger.info(f"Loaded {len(df)} rows from {path}")
    return df


def load_directory_store(data_dir: Union[str, Path],
                         collections: Optional[List[str]] = None) -> DataFrameEntityStore:
    """
    Build an entity store from a data directory.

    Collections without a file are loaded empty.

    Args:
        data_dir: Directory holding one file per collection
        collections: Collection names to load (defaults to all known)

    Returns:
        Store with full-text indexes built for the indexed kinds
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise FileNotFoundError(f"Data directory not found: {data_dir}")

    loaded: Dict[str, Any] = {}
    for name in collections or known_collections():
        candidates = [data_dir / f"{name}{suffix}" for suffix in SUPPORTED_FORMATS]
        existing = [path for path in candidates if path.exists()]
        if not existing:
            logger.warning(f"No data file for collection '{name}' in {data_dir}")
            loaded[name] = []
            continue
        if len(existing) > 1:
            logger.warning(f"Several files for collection '{name}', using {existing[0].name}")
        loaded[name] = load_collection_file(existing[0])

    return DataFrameEntityStore(loaded, text_index_fields=text_index_fields())
