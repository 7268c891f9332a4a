"""ASP registry: the single source of truth for provider metadata.

Onboarding a new ASP means adding one AspEntry below. Every lookup table used
by the normalizer, the SQL normalization expression and the storefront policy
is derived from ASP_REGISTRY.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AspEntry:
    """Registry entry for one provider."""

    id: str  # canonical provider id (lowercase)
    display_name: str
    db_names: tuple[str, ...]  # raw asp_name values crawlers write
    provider_label: str
    ja_aliases: tuple[str, ...] = ()
    parent_id: Optional[str] = None  # aggregator this sub-brand is sold through
    url_pattern: Optional[str] = None  # affiliate URL fragment identifying the sub-brand
    display_order: Optional[int] = None  # None = hidden from provider filters
    in_general_site: bool = True
    in_brand_site: bool = False
    is_subscription: bool = False


ASP_REGISTRY: tuple[AspEntry, ...] = (
    # ---- Primary networks ----
    AspEntry("sokmil", "SOKMIL", ("SOKMIL", "ソクミル"), "ソクミル", display_order=0),
    AspEntry("duga", "DUGA", ("DUGA", "APEX"), "DUGA", display_order=1),
    AspEntry(
        "fanza",
        "FANZA",
        ("FANZA", "DMM"),
        "FANZA",
        display_order=2,
        in_general_site=False,
        in_brand_site=True,
    ),
    AspEntry("b10f", "B10F", ("B10F", "b10f.jp"), "b10f.jp", display_order=3),
    AspEntry("mgs", "MGS動画", ("MGS",), "MGS動画", ja_aliases=("MGS動画",), display_order=4),
    AspEntry("fc2", "FC2", ("FC2",), "FC2", display_order=7),
    AspEntry("japanska", "Japanska", ("Japanska", "JAPANSKA"), "Japanska", display_order=12),
    AspEntry("dti", "DTI", ("DTI",), "DTI", in_general_site=False),
    # ---- Sub-brands sold through the DTI aggregator ----
    AspEntry(
        "caribbeancompr",
        "カリビアンコムPR",
        ("CARIBBEANCOMPR",),
        "カリビアンコムプレミアム",
        ja_aliases=("カリビアンコムプレミアム", "カリビアンコムPR"),
        parent_id="dti",
        url_pattern="caribbeancompr.com",
        display_order=5,
    ),
    AspEntry(
        "heyzo", "HEYZO", ("HEYZO",), "HEYZO",
        parent_id="dti", url_pattern="heyzo.com", display_order=6,
    ),
    AspEntry(
        "1pondo", "一本道", ("1PONDO",), "一本道",
        ja_aliases=("一本道",), parent_id="dti", url_pattern="1pondo.tv", display_order=8,
    ),
    AspEntry(
        "caribbeancom", "カリビアンコム", ("CARIBBEANCOM",), "カリビアンコム",
        ja_aliases=("カリビアンコム",), parent_id="dti", url_pattern="caribbeancom.com",
        display_order=9,
    ),
    AspEntry(
        "heydouga", "Hey動画", ("HEYDOUGA",), "Hey動画",
        parent_id="dti", url_pattern="heydouga.com", display_order=10,
    ),
    AspEntry(
        "x1x", "X1X", ("X1X",), "x1x.com",
        parent_id="dti", url_pattern="x1x.com", display_order=11,
    ),
    AspEntry(
        "enkou55", "エンコウ55", ("ENKOU55",), "エンコウ55",
        parent_id="dti", url_pattern="enkou55.com", display_order=13,
    ),
    AspEntry(
        "urekko", "ウレッコ", ("UREKKO",), "ウレッコ",
        parent_id="dti", url_pattern="urekko", display_order=14,
    ),
    AspEntry(
        "tvdeav", "TVDEAV", ("TVDEAV",), "TVDEAV",
        parent_id="dti", url_pattern="tvdeav", display_order=15,
    ),
    AspEntry(
        "tokyohot", "Tokyo Hot", ("TOKYOHOT",), "Tokyo-Hot",
        ja_aliases=("Tokyo Hot", "トウキョウホット"), parent_id="dti",
        url_pattern="tokyo-hot.com", display_order=16,
    ),
    AspEntry(
        "10musume", "天然むすめ", ("10MUSUME",), "天然むすめ",
        ja_aliases=("天然むすめ",), parent_id="dti", url_pattern="10musume.com",
    ),
    AspEntry(
        "pacopacomama", "パコパコママ", ("PACOPACOMAMA",), "パコパコママ",
        ja_aliases=("パコパコママ",), parent_id="dti", url_pattern="pacopacomama.com",
    ),
    AspEntry(
        "muramura", "ムラムラ", ("MURAMURA",), "ムラムラってくる素人",
        ja_aliases=("ムラムラ", "ムラムラってくる素人"), parent_id="dti",
        url_pattern="muramura.tv",
    ),
    AspEntry(
        "av9898", "AV9898", ("AV9898",), "AV9898",
        parent_id="dti", url_pattern="av9898.com", in_general_site=False,
    ),
    AspEntry(
        "honnamatv", "ホンナマTV", ("HONNAMATV",), "honnamatv",
        parent_id="dti", url_pattern="honnamatv.com", in_general_site=False,
    ),
)

# Names kept alive for rows written before a network was renamed
LEGACY_ALIASES: dict[str, str] = {
    "人妻斬り": "muramura",
    "金髪天國": "tokyohot",
}


# ============================================================
# Derived tables
# ============================================================

PROVIDERS: dict[str, AspEntry] = {e.id: e for e in ASP_REGISTRY}

# Affiliate URL fragment -> sub-brand id, in registry order
URL_PATTERNS: dict[str, str] = {e.url_pattern: e.id for e in ASP_REGISTRY if e.url_pattern}

# Aggregator providers, and the raw names they are stored under
AGGREGATOR_IDS: frozenset[str] = frozenset(e.parent_id for e in ASP_REGISTRY if e.parent_id)
AGGREGATOR_NAMES: frozenset[str] = frozenset(
    name.upper() for agg in AGGREGATOR_IDS for name in PROVIDERS[agg].db_names
)

# Every raw spelling (db name, native alias, legacy alias) -> canonical id.
# Keys are upper-cased; crawlers disagree on case ("DMM", "dmm", "b10f.jp").
ALIAS_TO_PROVIDER: dict[str, str] = {
    **{alias.upper(): e.id for e in ASP_REGISTRY for alias in e.ja_aliases},
    **{name.upper(): e.id for e in ASP_REGISTRY for name in e.db_names},
    **{alias.upper(): provider_id for alias, provider_id in LEGACY_ALIASES.items()},
}

DISPLAY_NAMES: dict[str, str] = {e.id: e.display_name for e in ASP_REGISTRY}

VALID_PROVIDER_IDS: frozenset[str] = frozenset(PROVIDERS)

DISPLAY_ORDER: tuple[str, ...] = tuple(
    e.id
    for e in sorted(
        (e for e in ASP_REGISTRY if e.display_order is not None),
        key=lambda e: e.display_order,
    )
)

PROVIDER_TO_RAW_NAMES: dict[str, tuple[str, ...]] = {
    e.id: e.db_names + e.ja_aliases for e in ASP_REGISTRY
}

# Upper-cased raw db name -> label shown on listing badges
PROVIDER_LABELS: dict[str, str] = {
    name.upper(): e.provider_label for e in ASP_REGISTRY for name in e.db_names
}


def get_entry(provider_id: str) -> Optional[AspEntry]:
    """Look up an entry by canonical id."""
    return PROVIDERS.get(provider_id)
