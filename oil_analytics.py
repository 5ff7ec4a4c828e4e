# ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
#
# Author: Simran S. Sangha
# Copyright (c) 2026, by the California Institute of Technology. ALL RIGHTS
# RESERVED. United States Government Sponsorship acknowledged.
#
# ~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
"""
Oil Production Analytics Library
Scrapes the Wikipedia list of countries by oil production (EIA, 2019),
cleans it, joins it onto world map polygons and renders a choropleth.

PIPELINE GUIDE:
---------------
Every stage is a plain function so it can be run and tested on its own:

1. Fetch:  `fetch_production_table(url)` -> raw DataFrame of cell text.
2. Clean:  `clean_production_table(raw)` -> rank, country, opec_ind,
   oil_bbl_per_day.
3. Join:   `world_to_map_points(world)` flattens polygons into ordered
   points, `join_production(points, production)` attaches the values.
4. Render: `render_choropleth(joined, out_path)`.

`OilProductionAnalyzer` chains the stages for the execution wrapper
(`run_oil_map.py`) and writes the outputs.
"""

import io
import logging
import warnings
from pathlib import Path
from urllib.request import Request, urlopen

import country_converter as coco
import geopandas as gpd
import matplotlib.colors as mcolors
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from bs4 import BeautifulSoup
from matplotlib import font_manager
from matplotlib.cm import ScalarMappable
from matplotlib.collections import PatchCollection
from matplotlib.patches import Patch, Polygon

logger = logging.getLogger(__name__)

# ==========================================
# CONSTANTS & CONFIG
# ==========================================

WIKIPEDIA_URL = (
    "https://en.wikipedia.org/wiki/List_of_countries_by_oil_production"
)
NATURAL_EARTH_URL = (
    "https://naciscdn.org/naturalearth/110m/cultural/"
    "ne_110m_admin_0_countries.zip"
)
USER_AGENT = "oil-production-map/1.0 (+https://en.wikipedia.org)"
FETCH_TIMEOUT = 30

# Source table is renamed by position, so its shape is checked first
RAW_COLUMNS = ['rank', 'country', 'oil_bbl_per_day', 'prod_per_capita']
PRODUCTION_COLUMNS = ['rank', 'country', 'opec_ind', 'oil_bbl_per_day']
MAP_POINT_COLUMNS = ['long', 'lat', 'group', 'order', 'region']

THOUSANDS_SEPARATOR = ','
OPEC_MARKER = 'OPEC'
OPEC_ANNOTATION = ' (OPEC)'

# Candidate region-name columns, in lookup order
REGION_NAME_COLUMNS = ['region', 'name', 'NAME', 'ADMIN']

# Split used for the skew check on the production figures
THRESHOLD_BBL_PER_DAY = 822675

# Fill gradient: anchor colors at explicit (non-uniform) breakpoints
FILL_BREAKS = [100, 96581, 822675, 3190373, 10000000]
FILL_COLORS = ['#461863', '#404E88', '#2A8A8C', '#7FD157', '#F9E53F']
NA_FILL_COLOR = '#7F7F7F'
DRAFT_COLORS = ['#132B43', '#56B1F7']

# Presentation
FIG_SIZE_STD = (16, 9)
BACKGROUND_COLOR = '#333333'
TEXT_COLOR = '#EEEEEE'
CAPTION_COLOR = '#CCCCCC'
PLOT_TITLE_SIZE = 28
PLOT_SUBTITLE_SIZE = 14
CAPTION_SIZE = 8.5
PREFERRED_FONT = 'Gill Sans'
LEGEND_POSITION = (0.18, 0.36)
CAPTION_XY = (18, -55)

PLOT_TITLE = 'Oil Production by Country'
PLOT_SUBTITLE = 'Barrels per day, 2019'
LEGEND_TITLE = 'bbl/day'
CAPTION = (
    'Source: U.S. Energy Information Administration\n'
    f'{WIKIPEDIA_URL}'
)

# Source names -> Natural Earth 'NAME' regions. Only applied on request;
# the default join is a plain name match.
REGION_ALIASES = {
    'United States[6]': 'United States of America',
    'United States': 'United States of America',
    'Congo, Republic of the': 'Congo',
    'Congo, Democratic Republic of the': 'Dem. Rep. Congo',
    'Sudan and South Sudan': 'Sudan',
    'South Sudan': 'S. Sudan',
    'Equatorial Guinea': 'Eq. Guinea',
    'Bosnia and Herzegovina': 'Bosnia and Herz.',
    'Dominican Republic': 'Dominican Rep.',
    'Central African Republic': 'Central African Rep.',
    "Cote d'Ivoire": "Côte d'Ivoire",
    'Ivory Coast': "Côte d'Ivoire",
    'Eswatini': 'eSwatini',
    'East Timor': 'Timor-Leste',
}


# ==========================================
# UTILITY FUNCTIONS
# ==========================================

def get_safe_font_family():
    """Return a safe font family list."""
    try:
        font_paths = font_manager.findSystemFonts(
            fontpaths=None, fontext='ttf'
        )
        if any('GillSans' in f or 'Gill Sans' in f for f in font_paths):
            return [PREFERRED_FONT, 'sans-serif']
    except Exception:  # pylint: disable=broad-except
        pass
    return ['sans-serif']


def strip_thousands(values):
    """Remove every thousands separator from a Series of cell text."""
    return values.map(
        lambda v: v.replace(THOUSANDS_SEPARATOR, '').strip()
        if isinstance(v, str) else v
    )


def _to_integer(values):
    """Coerce text to nullable integers; malformed text becomes <NA>."""
    numbers = pd.to_numeric(values, errors='coerce').astype(float)
    # inf, nan and anything past int64 cannot be cast
    numbers = numbers.where(np.isfinite(numbers) & (numbers.abs() < 2**63))
    return np.trunc(numbers).astype('Int64')


# ==========================================
# FETCH
# ==========================================

def fetch_html(url, timeout=FETCH_TIMEOUT):
    """Download a page and return its decoded text. Errors propagate."""
    req = Request(url, headers={"User-Agent": USER_AGENT})
    with urlopen(req, timeout=timeout) as resp:
        charset = resp.headers.get_content_charset() or 'utf-8'
        return resp.read().decode(charset)


def _flatten_header(column):
    """Join the levels of a multi-row header, dropping repeats."""
    if not isinstance(column, tuple):
        return column
    parts = []
    for part in column:
        part = str(part).strip()
        if part and not part.startswith('Unnamed:') and part not in parts:
            parts.append(part)
    return ' '.join(parts)


def parse_first_table(html):
    """
    Parse the first <table> of a document into a DataFrame.

    Cell text is kept as text (no thousands handling); header rows made
    of <th> cells become column names, joined when there are several.
    Headerless tables get X1..Xn.
    """
    soup = BeautifulSoup(html, 'html.parser')
    table = soup.find('table')
    if table is None:
        raise ValueError("No <table> element found in document")

    df = pd.read_html(io.StringIO(str(table)), thousands=None)[0]
    if isinstance(df.columns, pd.MultiIndex):
        df.columns = [_flatten_header(c) for c in df.columns]
    df.columns = [
        f"X{c + 1}" if isinstance(c, (int, np.integer)) else c
        for c in df.columns
    ]
    return df


def fetch_production_table(url=WIKIPEDIA_URL, timeout=FETCH_TIMEOUT):
    """One GET, first table. Not cached: every call re-fetches."""
    return parse_first_table(fetch_html(url, timeout=timeout))


# ==========================================
# CLEAN
# ==========================================

def clean_production_table(raw):
    """
    Turn the raw scraped table into production records.

    Columns are renamed by position, so the raw table must have exactly
    four columns in the order rank, country, production, per capita.
    """
    if raw.shape[1] != len(RAW_COLUMNS):
        raise ValueError(
            f"Expected {len(RAW_COLUMNS)} columns "
            f"({', '.join(RAW_COLUMNS)}), got {raw.shape[1]}: "
            f"{list(raw.columns)}"
        )

    df = raw.copy()
    df.columns = RAW_COLUMNS

    df['rank'] = _to_integer(df['rank'])
    for col in ['oil_bbl_per_day', 'prod_per_capita']:
        df[col] = _to_integer(strip_thousands(df[col]))

    # Missing names stay missing
    country = df['country'].astype(object)
    country = country.where(country.isna(), country.astype(str))
    df['opec_ind'] = country.str.contains(
        OPEC_MARKER, regex=False, na=False
    ).astype(int)
    df['country'] = (
        country
        .str.replace(OPEC_ANNOTATION, '', n=1, regex=False)
        .str.replace(r'\s{2,}', ' ', regex=True)
        .str.strip()
    )

    return df[PRODUCTION_COLUMNS].reset_index(drop=True)


def summarize_opec(production):
    """Names of the rows flagged as OPEC members, in table order."""
    return production.loc[production['opec_ind'] == 1, 'country'].tolist()


def summarize_by_threshold(production, threshold=THRESHOLD_BBL_PER_DAY):
    """Mean daily production strictly above and strictly below a split."""
    values = production['oil_bbl_per_day'].dropna().astype(float)
    return {
        'threshold': threshold,
        'mean_above': values[values > threshold].mean(),
        'mean_below': values[values < threshold].mean(),
    }


# ==========================================
# JOIN
# ==========================================

def load_world_map(path=None):
    """
    Load the world polygons. An explicit path or URL is read as given;
    otherwise the bundled Natural Earth low-res layer is used, falling
    back to the Natural Earth download on newer geopandas.
    """
    if path:
        return gpd.read_file(path)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            return gpd.read_file(
                gpd.datasets.get_path('naturalearth_lowres')
            )
        except (AttributeError, ValueError):
            return gpd.read_file(NATURAL_EARTH_URL)


def _detect_region_column(world):
    name_col = next(
        (c for c in REGION_NAME_COLUMNS if c in world.columns), None
    )
    if name_col is None:
        raise ValueError(
            f"No region name column found; looked for {REGION_NAME_COLUMNS}"
        )
    return name_col


def world_to_map_points(world, name_col=None):
    """
    Flatten polygons into ordered map points.

    Each polygon part (exterior ring) becomes one `group`; `order` counts
    vertices across the whole table so the drawing order survives joins.
    """
    name_col = name_col or _detect_region_column(world)

    records = []
    group = 0
    for region, geom in zip(world[name_col], world.geometry):
        if geom is None or geom.is_empty:
            continue
        for part in getattr(geom, 'geoms', [geom]):
            exterior = getattr(part, 'exterior', None)
            if exterior is None:
                continue
            group += 1
            for coord in exterior.coords:
                records.append((coord[0], coord[1], group, region))

    points = pd.DataFrame(records, columns=['long', 'lat', 'group', 'region'])
    points.insert(3, 'order', range(1, len(points) + 1))
    return points[MAP_POINT_COLUMNS]


def list_regions(points):
    """Sorted distinct region names of a map point table."""
    return sorted(points['region'].dropna().unique().tolist())


def apply_region_aliases(production, aliases=None):
    """Rename source country names to map region names."""
    aliases = REGION_ALIASES if aliases is None else aliases
    df = production.copy()
    df['country'] = df['country'].replace(aliases)
    return df


def _to_iso3(names):
    logging.getLogger('country_converter').setLevel(logging.ERROR)
    if not names:
        return []
    known = [n for n in names if isinstance(n, str)]
    if not known:
        return [None] * len(names)
    converted = coco.convert(names=known, to='ISO3', not_found='')
    if not isinstance(converted, list) or len(known) == 1:
        converted = [converted]
    lookup = {
        n: c if isinstance(c, str) and c else None
        for n, c in zip(known, converted)
    }
    return [lookup.get(n) if isinstance(n, str) else None for n in names]


def find_join_mismatches(production, points):
    """
    Production rows whose country has no polygon region.

    Each row gets an ISO3 code and, where the map has a region with the
    same code, that region name as `candidate_region`. Nothing is renamed.
    """
    regions = list_regions(points)
    unmatched = production[~production['country'].isin(regions)].copy()

    unmatched['iso3'] = _to_iso3(unmatched['country'].tolist())
    iso_to_region = {}
    for region, iso3 in zip(regions, _to_iso3(regions)):
        if iso3 and iso3 not in iso_to_region:
            iso_to_region[iso3] = region
    unmatched['candidate_region'] = unmatched['iso3'].map(iso_to_region)

    for row in unmatched.itertuples():
        logger.warning(
            "No map region for %r (%s bbl/day)%s",
            row.country, row.oil_bbl_per_day,
            f", closest region {row.candidate_region!r}"
            if isinstance(row.candidate_region, str) else ""
        )
    return unmatched


def join_production(points, production):
    """
    Left join production values onto map points.

    Driven by the point table: one row per point, in point order.
    Regions without production keep <NA>; countries without polygons
    are dropped.
    """
    prod = production.rename(columns={'country': 'region'})
    prod = prod[prod['region'].notna()]
    dupes = prod['region'].duplicated(keep='first')
    if dupes.any():
        logger.warning(
            "Dropping duplicate production rows for %s",
            sorted(prod.loc[dupes, 'region'].unique())
        )
        prod = prod[~dupes]

    return points.merge(
        prod, on='region', how='left', validate='many_to_one'
    )


# ==========================================
# RENDER
# ==========================================

def build_fill_colormap():
    """Colormap and clipping norm for the breakpoint gradient."""
    low, high = FILL_BREAKS[0], FILL_BREAKS[-1]
    positions = [(b - low) / (high - low) for b in FILL_BREAKS]
    cmap = mcolors.LinearSegmentedColormap.from_list(
        'oil_production', list(zip(positions, FILL_COLORS))
    )
    cmap.set_bad(NA_FILL_COLOR)
    norm = mcolors.Normalize(vmin=low, vmax=high, clip=True)
    return cmap, norm


def _draft_colormap(values):
    cmap = mcolors.LinearSegmentedColormap.from_list('draft', DRAFT_COLORS)
    cmap.set_bad(NA_FILL_COLOR)
    finite = values[~np.isnan(values)]
    if finite.size:
        norm = mcolors.Normalize(vmin=finite.min(), vmax=finite.max())
    else:
        norm = mcolors.Normalize(vmin=0, vmax=1)
    return cmap, norm


def render_choropleth(joined, out_path, draft=False, font_family=None):
    """
    Draw one filled polygon per group, colored by oil_bbl_per_day.

    `draft` gives the unstyled first look (continuous colorbar, default
    theme). Saves to `out_path` and returns the figure.
    """
    font_family = font_family or ['sans-serif']

    patches = []
    for _, shape in joined.groupby('group', sort=False):
        patches.append(
            Polygon(shape[['long', 'lat']].to_numpy(), closed=True)
        )
    values = (
        joined.groupby('group', sort=False)['oil_bbl_per_day'].first()
        .to_numpy(dtype=float, na_value=np.nan)
    )

    if draft:
        cmap, norm = _draft_colormap(values)
    else:
        cmap, norm = build_fill_colormap()
    facecolors = [
        NA_FILL_COLOR if np.isnan(v) else cmap(norm(v)) for v in values
    ]

    fig, ax = plt.subplots(figsize=FIG_SIZE_STD)
    ax.add_collection(
        PatchCollection(patches, facecolors=facecolors, edgecolors='none')
    )
    ax.autoscale_view()

    if draft:
        sm = ScalarMappable(norm=norm, cmap=cmap)
        sm.set_array(values)
        fig.colorbar(sm, ax=ax, label='oil_bbl_per_day')
        ax.set_xlabel('long')
        ax.set_ylabel('lat')
        fig.savefig(out_path, bbox_inches='tight', dpi=200)
        return fig

    fig.set_facecolor(BACKGROUND_COLOR)
    ax.set_facecolor(BACKGROUND_COLOR)
    ax.set_xticks([])
    ax.set_yticks([])
    for spine in ax.spines.values():
        spine.set_visible(False)

    ax.text(
        0, 1.06, PLOT_TITLE, transform=ax.transAxes, va='bottom',
        fontsize=PLOT_TITLE_SIZE, color=TEXT_COLOR, family=font_family
    )
    ax.text(
        0, 1.01, PLOT_SUBTITLE, transform=ax.transAxes, va='bottom',
        fontsize=PLOT_SUBTITLE_SIZE, color=TEXT_COLOR, family=font_family
    )
    ax.text(
        CAPTION_XY[0], CAPTION_XY[1], CAPTION, ha='left', va='center',
        fontsize=CAPTION_SIZE, color=CAPTION_COLOR, family=font_family
    )

    # Highest value first
    handles = [
        Patch(facecolor=cmap(norm(b)), edgecolor='none', label=f"{b:,}")
        for b in reversed(FILL_BREAKS)
    ]
    legend = fig.legend(
        handles=handles, title=LEGEND_TITLE, loc='center',
        bbox_to_anchor=LEGEND_POSITION, frameon=False,
        labelcolor=TEXT_COLOR, prop={'family': font_family}
    )
    legend.get_title().set_color(TEXT_COLOR)

    fig.savefig(
        out_path, bbox_inches='tight', dpi=200,
        facecolor=fig.get_facecolor()
    )
    return fig


# ==========================================
# ANALYZER CLASS
# ==========================================

class OilProductionAnalyzer:
    """
    Runs the scrape -> clean -> join -> render pipeline.

    Holds the run configuration and caches the world map for the
    lifetime of the instance; the scraped page is never cached.
    """

    def __init__(self, output_dir, url=WIKIPEDIA_URL, world_map_path=None,
                 apply_aliases=False):
        self.output_dir = Path(output_dir)
        self.url = url
        self.world_map_path = world_map_path
        self.apply_aliases = apply_aliases
        self.font_family = get_safe_font_family()
        self.world_map_data = None

        # Mute logging
        logging.getLogger('country_converter').setLevel(logging.ERROR)

    def load_world_map(self):
        """Loads and caches the world map data."""
        if self.world_map_data is None:
            self.world_map_data = load_world_map(self.world_map_path)
        return self.world_map_data

    def process_data(self):
        """Fetch and clean the production table."""
        print(f"Scraping {self.url} ...")
        raw = fetch_production_table(self.url)
        logger.debug("Raw table head:\n%s", raw.head())

        production = clean_production_table(raw)
        logger.info(
            "%d production rows, OPEC members: %s",
            len(production), ", ".join(summarize_opec(production))
        )

        split = summarize_by_threshold(production)
        logger.info(
            "Mean bbl/day above %d: %.2f, below: %.2f",
            split['threshold'], split['mean_above'], split['mean_below']
        )
        return production

    def build_map_data(self, production):
        """Returns (joined map points, unmatched production rows)."""
        points = world_to_map_points(self.load_world_map())
        logger.info("%d distinct map regions", len(list_regions(points)))

        if self.apply_aliases:
            production = apply_region_aliases(production)

        mismatches = find_join_mismatches(production, points)
        joined = join_production(points, production)
        return joined, mismatches

    def generate_outputs(self, production, joined, mismatches, draft=False):
        """Writes the workbook and the map; returns both paths."""
        self.output_dir.mkdir(parents=True, exist_ok=True)

        excel_path = self.output_dir / "oil_production_2019.xlsx"
        with pd.ExcelWriter(excel_path, engine='openpyxl') as writer:
            production.to_excel(writer, sheet_name='production', index=False)
            mismatches.to_excel(writer, sheet_name='mismatches', index=False)
        print(f"Spreadsheet saved: {excel_path}")

        suffix = "_draft" if draft else ""
        map_path = self.output_dir / f"oil_production_map{suffix}.png"
        print("Rendering map...")
        fig = render_choropleth(
            joined, map_path, draft=draft, font_family=self.font_family
        )
        plt.close(fig)
        print(f"Map saved: {map_path}")

        return map_path, excel_path
