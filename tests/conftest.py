# ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
#
# Author: Simran S. Sangha
# Copyright (c) 2026, by the California Institute of Technology. ALL RIGHTS
# RESERVED. United States Government Sponsorship acknowledged.
#
# ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
"""Shared fixtures: a trimmed copy of the 2019 table and a small map."""

import matplotlib

matplotlib.use("Agg")

import pandas as pd  # noqa: E402
import pytest  # noqa: E402

# (rank, country cell html, bbl/day, per capita)
PRODUCTION_ROWS = [
    ("—", "World production", "80,622,000", "10.6"),
    ("1", 'United States<sup class="reference">[6]</sup>',
     "15,043,000", "46"),
    ("2", "Saudi Arabia (OPEC)", "12,000,000", "354"),
    ("3", "Russia", "10,800,000", "74"),
    ("4", "Canada", "5,500,000", "147"),
    ("5", "Iraq (OPEC)", "4,451,516", "116"),
    ("6", "China", "3,987,000", "3"),
    ("7", "Iran (OPEC)", "3,990,956", "48"),
    ("8", "United Arab  Emirates (OPEC)", "3,106,077", "324"),
    ("9", "Kuwait (OPEC)", "2,923,825", "704"),
    ("10", "Brazil", "2,877,000", "14"),
    ("11", "Venezuela (OPEC)", "2,276,967", "72"),
    ("12", "Nigeria (OPEC)", "1,999,885", "10"),
    ("13", "Norway", "1,647,975", "311"),
    ("14", "Angola (OPEC)", "1,769,615", "60"),
    ("15", "Algeria (OPEC)", "1,348,361", "32"),
    ("16", "Libya (OPEC)", "1,039,125", "160"),
    ("21", "United Kingdom", "939,760", "14"),
    ("25", "Ecuador (OPEC)", "531,315", "31"),
    ("31", "Congo, Republic of the (OPEC)", "308,363", "58"),
    ("33", "Equatorial Guinea (OPEC)", "280,000", "215"),
    ("35", "Sudan and South Sudan", "255,000", "5"),
    ("37", "Gabon (OPEC)", "210,820", "97"),
    ("47", "Trinidad and Tobago", "60,090", "44"),
    ("67", "Congo, Democratic Republic of the", "20,000", "0"),
]

OPEC_COUNTRIES = {
    "Saudi Arabia", "Iraq", "Iran", "United Arab Emirates", "Kuwait",
    "Venezuela", "Nigeria", "Angola", "Algeria", "Libya", "Ecuador",
    "Congo, Republic of the", "Equatorial Guinea", "Gabon",
}

# Region naming as in the R maps package 'world' database
MAP_REGIONS = [
    "USA", "Saudi Arabia", "Russia", "Canada", "Iraq", "China", "Iran",
    "United Arab Emirates", "Kuwait", "Norway", "UK",
    "Republic of Congo", "Democratic Republic of the Congo", "Sudan",
    "South Sudan", "Trinidad", "Tobago", "Antarctica",
]


def production_html(rows=PRODUCTION_ROWS):
    body = "".join(
        f"<tr><td>{r}</td><td>{c}</td><td>{b}</td><td>{p}</td></tr>\n"
        for r, c, b, p in rows
    )
    return (
        "<html><body><p>Intro</p>"
        '<table class="wikitable sortable">\n'
        "<tr><th>Rank</th><th>Country</th>"
        "<th>Oil production 2019 (bbl/day)</th>"
        "<th>Oil production per capita (bbl/day per 1000 people)</th></tr>\n"
        f"{body}</table>"
        "<table><tr><th>Other</th></tr><tr><td>ignored</td></tr></table>"
        "</body></html>"
    )


def square_points(regions, parts=None):
    """Unit squares laid out left to right, one group per square."""
    parts = parts or {}
    records = []
    group = 0
    for i, region in enumerate(regions):
        for j in range(parts.get(region, 1)):
            group += 1
            x0, y0 = i * 2.0, j * 2.0
            for x, y in [(x0, y0), (x0 + 1, y0), (x0 + 1, y0 + 1),
                         (x0, y0 + 1), (x0, y0)]:
                records.append((x, y, group, region))
    points = pd.DataFrame(records, columns=["long", "lat", "group", "region"])
    points.insert(3, "order", range(1, len(points) + 1))
    return points


@pytest.fixture
def raw_html():
    return production_html()


@pytest.fixture
def raw_table(raw_html):
    from oil_analytics import parse_first_table
    return parse_first_table(raw_html)


@pytest.fixture
def production(raw_table):
    from oil_analytics import clean_production_table
    return clean_production_table(raw_table)


@pytest.fixture
def map_points():
    return square_points(MAP_REGIONS, parts={"USA": 3, "Russia": 2})
