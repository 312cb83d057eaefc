"""
Turn the three raw CSV datasets into typed records.

  - parse_rent_data():          rent table  -> {rent key: monthly rent}
  - parse_neighborhood_data():  centroids   -> [NeighborhoodRecord]
  - parse_tree_data():          tree census -> [TreeRecord], fully scored

Bad rows (unparseable or non-finite coordinates / rents) are dropped and
counted in the log, never raised. The datasets are curated exports and
gaps are expected.
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence

from interpolation import interpolate_tree_location
from models import (
    UNKNOWN_SPECIES,
    UNKNOWN_TREE_ID,
    NeighborhoodRecord,
    TreeRecord,
    normalize_neighborhood_name,
    normalize_rent_key,
)
from tabular import parse_table, row_to_dict
from tf_trace import traced_stage
from tree_scoring import (
    affordability_score,
    assign_accessibility_scores,
    assign_tree_friends_scores,
)

logger = logging.getLogger(__name__)

RENT_NAME_HEADER = "areaname"
RENT_VALUE_HEADER = "rent"


def parse_number(value: Optional[str]) -> float:
    """Parse a numeric cell. Blank or unparseable text comes back as NaN.

    Digit-group underscores ("1_000") are not numbers in the source data.
    """
    if value is None:
        return math.nan
    text = value.strip()
    if not text or "_" in text:
        return math.nan
    try:
        return float(text)
    except ValueError:
        return math.nan


def _text(row: Mapping[str, str], key: str) -> str:
    return (row.get(key) or "").strip()


def parse_rent_data(csv_text: str) -> Dict[str, float]:
    """Build the rent lookup from the rent table.

    The name and rent columns are found by case-insensitive header match
    ("areaName", "rent"); if either is missing the lookup is empty. A blank
    rent cell is a rent of 0; a missing cell on a short row drops the row.
    """
    lookup: Dict[str, float] = {}
    headers, rows = parse_table(csv_text)
    if not rows:
        return lookup

    lowered = [header.lower() for header in headers]
    if RENT_NAME_HEADER not in lowered or RENT_VALUE_HEADER not in lowered:
        logger.warning(
            "Rent table is missing %r or %r column (headers: %s); rent lookup is empty",
            RENT_NAME_HEADER, RENT_VALUE_HEADER, headers,
        )
        return lookup
    name_index = lowered.index(RENT_NAME_HEADER)
    rent_index = lowered.index(RENT_VALUE_HEADER)

    dropped = 0
    with traced_stage("parse_rents", items_in=len(rows)) as stage:
        for values in rows:
            key = normalize_rent_key(values[name_index] if name_index < len(values) else "")
            raw_rent = values[rent_index] if rent_index < len(values) else None
            # A present but blank rent cell counts as a rent of 0.
            rent = 0.0 if raw_rent is not None and not raw_rent.strip() else parse_number(raw_rent)
            if not key or not math.isfinite(rent) or rent < 0:
                dropped += 1
                continue
            lookup[key] = rent
        stage.items_out = len(rows) - dropped

    logger.info("Parsed %d rent entries (%d rows dropped)", len(lookup), dropped)
    return lookup


def parse_neighborhood_data(csv_text: str) -> List[NeighborhoodRecord]:
    headers, rows = parse_table(csv_text)
    neighborhoods: List[NeighborhoodRecord] = []
    dropped = 0
    with traced_stage("parse_neighborhoods", items_in=len(rows)) as stage:
        for values in rows:
            row = row_to_dict(headers, values)
            latitude = parse_number(row.get("latitude"))
            longitude = parse_number(row.get("longitude"))
            if not math.isfinite(latitude) or not math.isfinite(longitude):
                dropped += 1
                continue
            neighborhoods.append(NeighborhoodRecord(
                name=normalize_neighborhood_name(row.get("name", "")),
                latitude=latitude,
                longitude=longitude,
            ))
        stage.items_out = len(neighborhoods)

    logger.info("Parsed %d neighborhoods (%d rows dropped)", len(neighborhoods), dropped)
    return neighborhoods


def build_tree_record(
    row: Mapping[str, str],
    neighborhoods: Sequence[NeighborhoodRecord],
    rent_lookup: Mapping[str, float],
) -> Optional[TreeRecord]:
    """One unscored TreeRecord from a CSV row, or None if its coordinates are bad."""
    latitude = parse_number(row.get("latitude"))
    longitude = parse_number(row.get("longitude"))
    if not math.isfinite(latitude) or not math.isfinite(longitude):
        return None

    neighborhood, expected_rent = interpolate_tree_location(
        latitude, longitude, neighborhoods, rent_lookup,
    )

    return TreeRecord(
        tree_id=_text(row, "tree_id") or UNKNOWN_TREE_ID,
        status=_text(row, "status"),
        sidewalk=_text(row, "sidewalk"),
        problems=_text(row, "problems"),
        latitude=latitude,
        longitude=longitude,
        neighborhood=neighborhood,
        species=_text(row, "spc_common").lower() or UNKNOWN_SPECIES,
        expected_rent=expected_rent,
        affordability_score=(
            affordability_score(expected_rent) if expected_rent is not None else None
        ),
    )


def parse_tree_data(
    csv_text: str,
    neighborhoods: Sequence[NeighborhoodRecord],
    rent_lookup: Mapping[str, float],
) -> List[TreeRecord]:
    """Parse and fully score the tree dataset.

    Output order is input row order with bad rows removed. Tree friends
    scores are assigned before accessibility scores.
    """
    headers, rows = parse_table(csv_text)
    trees: List[TreeRecord] = []
    dropped = 0
    with traced_stage("parse_trees", items_in=len(rows)) as stage:
        for values in rows:
            tree = build_tree_record(row_to_dict(headers, values), neighborhoods, rent_lookup)
            if tree is None:
                dropped += 1
                continue
            trees.append(tree)
        stage.items_out = len(trees)

    logger.info("Parsed %d trees (%d rows dropped)", len(trees), dropped)

    with traced_stage("tree_friends", items_in=len(trees)) as stage:
        assign_tree_friends_scores(trees)
        stage.items_out = len(trees)
    with traced_stage("accessibility", items_in=len(trees)) as stage:
        assign_accessibility_scores(trees)
        stage.items_out = len(trees)
    return trees
