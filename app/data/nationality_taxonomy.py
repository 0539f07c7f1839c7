"""
TDMS Analytics - Nationality Taxonomy

Country-of-residence groupings used by the Regional Distribution of
Travellers report. Order matters: reports list regions, subregions and
countries exactly in this order.
"""

from typing import Dict, List, Optional, Tuple


PHILIPPINES = "Philippines"
OVERSEAS_FILIPINO_LABELS = ("Overseas Filipino", "Overseas Filipinos")

OTHERS_REGION = "OTHERS AND UNSPECIFIED RESIDENCES"
OTHERS_COUNTRY = "Others and Unspecified Residences"

# (region, subregion or None, countries)
NATIONALITY_TAXONOMY: List[Tuple[str, Optional[str], List[str]]] = [
    ("ASIA", "ASEAN", [
        "Brunei", "Cambodia", "Indonesia", "Laos", "Malaysia",
        "Myanmar", "Singapore", "Thailand", "Vietnam",
    ]),
    ("ASIA", "EAST ASIA", [
        "China", "Hong Kong", "Japan", "Korea", "Taiwan",
    ]),
    ("ASIA", "SOUTH ASIA", [
        "Bangladesh", "India", "Iran", "Nepal", "Pakistan", "Sri Lanka",
    ]),
    ("MIDDLE EAST", None, [
        "Bahrain", "Egypt", "Israel", "Jordan", "Kuwait",
        "Saudi Arabia", "United Arab Emirates",
    ]),
    ("AMERICA", "NORTH AMERICA", [
        "Canada", "Mexico", "USA",
    ]),
    ("AMERICA", "SOUTH AMERICA", [
        "Argentina", "Brazil", "Colombia", "Peru", "Venezuela",
    ]),
    ("EUROPE", "WESTERN EUROPE", [
        "Austria", "Belgium", "France", "Germany", "Luxembourg",
        "Netherlands", "Switzerland",
    ]),
    ("EUROPE", "NORTHERN EUROPE", [
        "Denmark", "Finland", "Ireland", "Norway", "Sweden", "United Kingdom",
    ]),
    ("EUROPE", "SOUTHERN EUROPE", [
        "Greece", "Italy", "Portugal", "Spain", "Union of Serbia and Montenegro",
    ]),
    ("EUROPE", "EASTERN EUROPE", [
        "Poland", "Russia",
    ]),
    ("AUSTRALASIA/PACIFIC", None, [
        "Australia", "Guam", "Nauru", "New Zealand", "Papua New Guinea",
    ]),
    ("AFRICA", None, [
        "Nigeria", "South Africa",
    ]),
    (OTHERS_REGION, None, [
        OTHERS_COUNTRY,
    ]),
]


def build_country_index() -> Dict[str, Tuple[str, Optional[str]]]:
    """country -> (region, subregion)"""
    index = {}
    for region, sub_region, countries in NATIONALITY_TAXONOMY:
        for country in countries:
            index[country] = (region, sub_region)
    return index


COUNTRY_INDEX = build_country_index()
