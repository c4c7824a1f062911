import pytest

from geosync.matching import normalizer

NAMES = {
    "Norway": [
        "Sameiet Solsiden Borettslag",
        "Alvim Borettslag - all",
        "Bråten Borettslag A/L",
        "Borettslaget Kvartalet II",
        "Solsiden, Borettslag.",
        "Tårnet Garasjelag (fellesplass)",
        "AS AS",
        "- Zaptec",
        "Sameiet Borettslag",
        "",
    ],
    "Sweden": [
        "Brf Ekbacken i Stockholm",
        "HSB Bostadsrättsförening Sjöutsikten",
        "Riksbyggen Bostadsrättsförening Kronan 3",
        "Ekhagens Samfällighetsförening - laddboxar",
        "BRF Kungsholmen i Malmö - Easee",
    ],
    "Denmark": [
        "A/B Søndergården",
        "E/F Havnehuset Ejerforening",
        "Andelsboligforening Solgården IV",
    ],
}


@pytest.mark.parametrize(
    "name,country,expected",
    [
        ("Sameiet Solsiden Borettslag", "Norway", "Solsiden"),
        ("Alvim Borettslag - all", "Norway", "Alvim"),
        ("Bråten Borettslag A/L", "Norway", "Bråten"),
        ("Borettslaget Kvartalet II", "Norway", "Kvartalet"),
        ("Solsiden, Borettslag.", "Norway", "Solsiden"),
        ("Tårnet Garasjelag (fellesplass)", "Norway", "Tårnet"),
        ("Brf Ekbacken i Stockholm", "Sweden", "Ekbacken"),
        ("HSB Bostadsrättsförening Sjöutsikten", "Sweden", "Sjöutsikten"),
        ("Ekhagens Samfällighetsförening - laddboxar", "Sweden", "Ekhagens"),
        ("A/B Søndergården", "Denmark", "Søndergården"),
        ("E/F Havnehuset Ejerforening", "Denmark", "Havnehuset"),
    ],
)
def test_normalize_name_strips_country_affixes(name, country, expected):
    assert normalizer.normalize_name(name, country) == expected


def test_normalize_name_uses_country_specific_rules():
    # "i Stockholm" is a Swedish locative suffix only.
    assert normalizer.normalize_name("Brf Ekbacken i Stockholm", "Norway") == "Brf Ekbacken i Stockholm"
    assert normalizer.normalize_name("Sameiet Solsiden", "Denmark") == "Sameiet Solsiden"


def test_unknown_country_falls_back_to_norwegian_rules():
    assert normalizer.normalize_name("Sameiet Solsiden Borettslag", "Finland") == "Solsiden"
    assert normalizer.normalize_name("Sameiet Solsiden Borettslag", None) == "Solsiden"


def test_normalize_name_never_returns_empty_for_noise_only_names():
    assert normalizer.normalize_name("- Zaptec", "Norway") == "- Zaptec"
    assert normalizer.normalize_name("", "Norway") == ""


@pytest.mark.parametrize("country", sorted(NAMES))
def test_normalize_name_is_idempotent(country):
    for name in NAMES[country] + NAMES["Norway"]:
        once = normalizer.normalize_name(name, country)
        assert normalizer.normalize_name(once, country) == once


def test_extract_tokens_drops_short_tokens_and_stopwords():
    tokens = normalizer.extract_tokens("Borettslaget Sameiet Solsiden ved Elva", "Norway")
    assert tokens == ["solsiden", "elva"]


def test_extract_tokens_splits_on_separators_and_keeps_order():
    assert normalizer.extract_tokens("Nord-Sør/Vest (Øst) Hagen", "Norway") == ["nord", "sør", "vest", "øst"]


def test_extract_tokens_keeps_at_most_four():
    tokens = normalizer.extract_tokens("Storgata Park og Hage Vest Nord", "Norway")
    assert tokens == ["storgata", "park", "hage", "vest"]


@pytest.mark.parametrize("country", [None, "Norway", "Sweden", "Denmark"])
def test_extract_tokens_properties(country):
    stopwords = normalizer.stopwords_for(country)
    for names in NAMES.values():
        for name in names:
            tokens = normalizer.extract_tokens(name, country)
            assert len(tokens) <= 4
            assert all(len(token) > 2 for token in tokens)
            assert not any(token in stopwords for token in tokens)


def test_stopwords_include_affixes_of_every_country_when_unspecified():
    stopwords = normalizer.stopwords_for()
    assert {"sameiet", "borettslag", "brf", "bostadsrättsföreningen", "andelsboligforening"} <= stopwords
    assert "og" in stopwords and "och" in stopwords
