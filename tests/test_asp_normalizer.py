"""
Tests for ASP name normalization and the provider registry.
"""

import pytest
from sqlalchemy import column, select, table

from aspcatalog.providers.normalizer import (
    asp_normalization_expr,
    get_display_name,
    get_provider_label,
    is_aggregator_sub_service,
    is_valid_asp_name,
    normalize_asp_name,
    raw_names_for,
    resolve_sub_brand,
)
from aspcatalog.providers.registry import (
    AGGREGATOR_IDS,
    DISPLAY_ORDER,
    VALID_PROVIDER_IDS,
    get_entry,
)


class TestNormalizeAspName:
    """Test raw name -> canonical id mapping."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("FANZA", "fanza"),
            ("DMM", "fanza"),
            ("fanza", "fanza"),
            ("APEX", "duga"),
            ("DUGA", "duga"),
            ("ソクミル", "sokmil"),
            ("b10f.jp", "b10f"),
            ("MGS動画", "mgs"),
            ("一本道", "1pondo"),
            ("人妻斬り", "muramura"),
            ("金髪天國", "tokyohot"),
            ("dmm", "fanza"),
            ("Dmm", "fanza"),
            ("apex", "duga"),
            ("B10F.JP", "b10f"),
            ("b10f.JP", "b10f"),
            ("tokyo hot", "tokyohot"),
        ],
    )
    def test_known_aliases(self, raw, expected):
        assert normalize_asp_name(raw) == expected

    def test_legacy_lowercase_aliases_are_not_new_providers(self):
        for raw in ("dmm", "apex", "b10f.JP"):
            assert is_valid_asp_name(raw)
            assert normalize_asp_name(raw) != raw.lower()

    def test_unknown_name_is_lowercased(self):
        assert normalize_asp_name("NewNetwork") == "newnetwork"

    def test_empty_name(self):
        assert normalize_asp_name("") == ""
        assert normalize_asp_name(None) == ""

    def test_aggregator_resolved_by_url(self):
        assert normalize_asp_name("DTI", "https://www.caribbeancompr.com/moviepages/1") == "caribbeancompr"
        assert normalize_asp_name("DTI", "https://www.heyzo.com/moviepages/0001/") == "heyzo"
        assert normalize_asp_name("DTI", "https://www.1pondo.tv/movies/010124_001/") == "1pondo"

    def test_aggregator_name_is_case_insensitive(self):
        assert normalize_asp_name("dti", "https://www.heyzo.com/x") == "heyzo"

    def test_aggregator_without_matching_url(self):
        assert normalize_asp_name("DTI") == "dti"
        assert normalize_asp_name("DTI", "https://example.com/") == "dti"

    def test_caribbeancom_is_not_caribbeancompr(self):
        assert normalize_asp_name("DTI", "https://www.caribbeancom.com/moviepages/1") == "caribbeancom"

    def test_resolve_sub_brand(self):
        assert resolve_sub_brand("dti", "HTTPS://WWW.MURAMURA.TV/") == "muramura"
        assert resolve_sub_brand("dti", None) == "dti"


class TestRegistryLookups:
    """Test derived registry helpers."""

    def test_display_and_label(self):
        assert get_display_name("MGS") == "MGS動画"
        assert get_display_name("unknown-asp") == "unknown-asp"
        assert get_provider_label("SOKMIL") == "ソクミル"
        assert get_provider_label("dmm") == "FANZA"
        assert get_provider_label("DTI", "https://www.heyzo.com/") == "DTI"
        assert get_provider_label("unknown-asp") == "unknown-asp"

    def test_validity(self):
        assert is_valid_asp_name("APEX")
        assert not is_valid_asp_name("nowhere")
        assert not is_valid_asp_name("")

    def test_aggregator_sub_service(self):
        assert "dti" in AGGREGATOR_IDS
        assert is_aggregator_sub_service("DTI")
        assert is_aggregator_sub_service("HEYZO")
        assert not is_aggregator_sub_service("MGS")

    def test_raw_names_inverse(self):
        assert set(raw_names_for("duga")) == {"DUGA", "APEX"}
        assert raw_names_for("nowhere") == ()

    def test_display_order(self):
        assert DISPLAY_ORDER[:3] == ("sokmil", "duga", "fanza")
        assert "10musume" not in DISPLAY_ORDER

    def test_entries(self):
        assert get_entry("fanza").in_brand_site
        assert not get_entry("fanza").in_general_site
        assert get_entry("heyzo").parent_id == "dti"
        assert get_entry("nowhere") is None
        assert "fanza" in VALID_PROVIDER_IDS


class TestNormalizationExpression:
    """The SQL CASE must agree with normalize_asp_name."""

    ROWS = [
        ("FANZA", None),
        ("DMM", "https://www.dmm.co.jp/x"),
        ("APEX", None),
        ("ソクミル", None),
        ("DTI", "https://www.heyzo.com/moviepages/0001/"),
        ("dti", "https://www.caribbeancompr.com/x"),
        ("DTI", None),
        ("人妻斬り", None),
        ("NewNetwork", None),
        ("dmm", None),
        ("apex", None),
        ("b10f.JP", None),
        ("Tokyo Hot", None),
    ]

    async def test_sql_matches_python(self, db_engine):
        async with db_engine.begin() as conn:
            await conn.exec_driver_sql(
                "CREATE TEMP TABLE raw_sources (asp_name TEXT, affiliate_url TEXT)"
            )
            for asp_name, url in self.ROWS:
                await conn.exec_driver_sql(
                    "INSERT INTO raw_sources VALUES (?, ?)", (asp_name, url)
                )
            raw = table("raw_sources", column("asp_name"), column("affiliate_url"))
            expr = asp_normalization_expr(raw.c.asp_name, raw.c.affiliate_url)
            result = await conn.execute(select(raw.c.asp_name, raw.c.affiliate_url, expr))
            rows = result.all()

        assert len(rows) == len(self.ROWS)
        for asp_name, url, canonical in rows:
            assert canonical == normalize_asp_name(asp_name, url)
