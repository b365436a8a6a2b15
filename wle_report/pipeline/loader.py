"""
Dataset loading: fetch the raw file once, cache it verbatim, parse it.
"""

import csv
import logging
import time
from pathlib import Path
from typing import Sequence, Union

import pandas as pd
import requests

from wle_report.exceptions import DatasetIOError, ParseError

logger = logging.getLogger(__name__)

DEFAULT_NA_VALUES = ("", "NA")


def fetch_dataset(source_url: str, local_path: Union[str, Path], timeout: float = 60) -> Path:
    """
    Download ``source_url`` to ``local_path`` unless a file already exists there.

    The cached copy is never refreshed. Bytes are written exactly as received.
    """
    path = Path(local_path)
    if path.exists():
        logger.info(f"Using cached dataset at {path}")
        return path

    logger.info(f"Downloading dataset from {source_url}")
    start_time = time.time()
    try:
        response = requests.get(source_url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise DatasetIOError(f"Failed to fetch {source_url}: {e}", source=source_url) from e

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".part")
    try:
        tmp_path.write_bytes(response.content)
        tmp_path.replace(path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise DatasetIOError(f"Failed to write {path}: {e}", source=source_url) from e

    elapsed_time = time.time() - start_time
    logger.info(f"Saved {len(response.content)} bytes to {path} in {elapsed_time:.2f} seconds")
    return path


def _check_field_counts(path: Path, delimiter: str = ","):
    """Every data row must have as many fields as the header."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        reader = csv.reader(f, delimiter=delimiter)
        header = next(reader, None)
        if header is None:
            raise ParseError(f"{path} is empty", line_number=0)
        for row in reader:
            if not row:
                continue
            if len(row) != len(header):
                raise ParseError(
                    f"{path}: line {reader.line_num} has {len(row)} fields, "
                    f"header has {len(header)}",
                    line_number=reader.line_num,
                )


def parse_dataset(path: Union[str, Path],
                  na_values: Sequence[str] = DEFAULT_NA_VALUES,
                  delimiter: str = ",") -> pd.DataFrame:
    """Parse a delimited file, treating every ``na_values`` marker as missing."""
    path = Path(path)
    try:
        _check_field_counts(path, delimiter)
        df = pd.read_csv(
            path,
            sep=delimiter,
            na_values=list(na_values),
            keep_default_na=False,
            low_memory=False,
        )
    except (csv.Error, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ParseError(f"Could not parse {path}: {e}") from e
    except OSError as e:
        raise DatasetIOError(f"Could not read {path}: {e}", source=str(path)) from e

    df = df.rename(columns=_blank_header_names(df.columns))
    logger.info(f"Parsed {path.name}: {df.shape[0]} rows x {df.shape[1]} columns")
    return df


def _blank_header_names(columns) -> dict:
    """Blank header cells become X, X.1, X.2, ... (the row-number column is blank in the source)."""
    renames = {}
    for col in columns:
        if str(col).startswith("Unnamed: "):
            renames[col] = "X" if not renames else f"X.{len(renames)}"
    return renames


def load_dataset(source_url: str,
                 local_path: Union[str, Path],
                 na_values: Sequence[str] = DEFAULT_NA_VALUES,
                 timeout: float = 60) -> pd.DataFrame:
    """Fetch (if not cached) and parse the dataset."""
    path = fetch_dataset(source_url, local_path, timeout=timeout)
    return parse_dataset(path, na_values=na_values)
