"""
TDMS Analytics - Nationality Classifier

Maps free-text nationality values to the fixed country-of-residence
taxonomy and rolls counts up into the Regional Distribution of Travellers.

Partition:
- Philippine residents: exactly "Philippines"
- Overseas Filipinos: "Overseas Filipino" / "Overseas Filipinos"
- Non-Philippine residents: everything else, including values that match no
  country in the taxonomy (counted under Others and Unspecified Residences)

Matching is exact and case-sensitive.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from app.data.nationality_taxonomy import (
    COUNTRY_INDEX,
    NATIONALITY_TAXONOMY,
    OTHERS_COUNTRY,
    OTHERS_REGION,
    OVERSEAS_FILIPINO_LABELS,
    PHILIPPINES,
)


@dataclass(frozen=True)
class NationalityClassification:
    nationality: Optional[str]
    top_region: Optional[str]
    sub_region: Optional[str]
    country: Optional[str]
    is_philippine_resident: bool = False
    is_overseas_filipino: bool = False

    @property
    def is_non_philippine_resident(self) -> bool:
        return not (self.is_philippine_resident or self.is_overseas_filipino)


def classify(nationality: Optional[str]) -> NationalityClassification:
    """Classify one nationality value."""
    if nationality == PHILIPPINES:
        return NationalityClassification(
            nationality=nationality,
            top_region=None,
            sub_region=None,
            country=PHILIPPINES,
            is_philippine_resident=True,
        )
    if nationality in OVERSEAS_FILIPINO_LABELS:
        return NationalityClassification(
            nationality=nationality,
            top_region=None,
            sub_region=None,
            country=None,
            is_overseas_filipino=True,
        )

    match = COUNTRY_INDEX.get(nationality) if nationality else None
    if match is None:
        return NationalityClassification(
            nationality=nationality,
            top_region=OTHERS_REGION,
            sub_region=None,
            country=OTHERS_COUNTRY,
        )

    region, sub_region = match
    return NationalityClassification(
        nationality=nationality,
        top_region=region,
        sub_region=sub_region,
        country=nationality,
    )


def _iter_counts(
    counts: Union[Mapping[Optional[str], int], Iterable[Union[Mapping, Tuple[Optional[str], int]]]],
) -> Iterable[Tuple[Optional[str], int]]:
    if isinstance(counts, Mapping):
        yield from counts.items()
        return
    for row in counts:
        if isinstance(row, Mapping):
            yield row.get("nationality"), int(row.get("count") or 0)
        else:
            nationality, count = row
            yield nationality, int(count or 0)


def build_distribution(counts) -> Dict:
    """
    Roll nationality counts into the taxonomy.

    Accepts a {nationality: count} mapping or rows with nationality/count.
    Every taxonomy country appears in the output, zero-filled.

    Invariant: grand_total == philippine_residents
               + non_philippine_residents + overseas_filipinos
    """
    by_country: Dict[str, int] = {}
    philippine_residents = 0
    overseas_filipinos = 0
    non_philippine_residents = 0
    unclassified: List[str] = []

    for nationality, count in _iter_counts(counts):
        result = classify(nationality)
        if result.is_philippine_resident:
            philippine_residents += count
        elif result.is_overseas_filipino:
            overseas_filipinos += count
        else:
            non_philippine_residents += count
            by_country[result.country] = by_country.get(result.country, 0) + count
            if result.country == OTHERS_COUNTRY and nationality != OTHERS_COUNTRY and count:
                unclassified.append(nationality if nationality is not None else "")

    groups = []
    for region, sub_region, countries in NATIONALITY_TAXONOMY:
        rows = [{"country": c, "count": by_country.get(c, 0)} for c in countries]
        groups.append({
            "region": region,
            "sub_region": sub_region,
            "label": f"{region} - {sub_region}" if sub_region else region,
            "countries": rows,
            "subtotal": sum(r["count"] for r in rows),
        })

    return {
        "groups": groups,
        "philippine_residents": philippine_residents,
        "non_philippine_residents": non_philippine_residents,
        "overseas_filipinos": overseas_filipinos,
        "grand_total": philippine_residents + non_philippine_residents + overseas_filipinos,
        "unclassified": sorted(set(unclassified)),
    }
