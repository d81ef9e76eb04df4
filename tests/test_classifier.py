from labtracker.services.classifier import UNKNOWN_MARKER, canonicalize, canonicalize_many
from labtracker.services.marker_catalog import DEFAULT_CATALOG, build_marker_catalog, normalize_marker_text


def test_exact_aliases_in_english_and_dutch():
    assert canonicalize("HCT") == "Hematocrit"
    assert canonicalize("Hematocriet") == "Hematocrit"
    assert canonicalize("Sex Hormone Binding Globulin") == "SHBG"


def test_free_and_bioavailable_testosterone_win_over_total():
    assert canonicalize("Vrij testosteron") == "Free Testosterone"
    assert canonicalize("Testosterone, free (calc.)") == "Free Testosterone"
    assert canonicalize("Bioavailable testosterone") == "Bioavailable Testosterone"


def test_alias_inside_longer_label():
    assert canonicalize("Testosteron totaal") == "Testosterone"
    assert canonicalize("LDL cholesterol calculated") == "LDL Cholesterol"


def test_fuzzy_match_tolerates_typos():
    assert canonicalize("Haemoglobine") == "Hemoglobin"


def test_unknown_label_is_title_cased():
    assert canonicalize("zonulin level") == "Zonulin Level"


def test_blank_label_is_unknown_marker():
    assert canonicalize("  ") == UNKNOWN_MARKER


def test_canonicalize_many_keeps_input_labels():
    result = canonicalize_many(["E2", "apo b"])
    assert result == {"E2": "Estradiol", "apo b": "Apolipoprotein B"}


def test_custom_catalog():
    catalog = build_marker_catalog([{"name": "Zonulin", "category": "Gut", "aliases": ["ZONULINE"]}])
    assert canonicalize("zonuline", catalog) == "Zonulin"
    assert catalog.lag_days("Zonulin") == catalog.default_lag_days
    assert catalog.clinical_weight("Zonulin") == catalog.default_clinical_weight


def test_catalog_lags_follow_category():
    assert DEFAULT_CATALOG.lag_days("Testosterone") == 10
    assert DEFAULT_CATALOG.lag_days("CRP") == 14
    assert DEFAULT_CATALOG.lag_days("Hematocrit") == 21
    assert DEFAULT_CATALOG.lag_days("LDL Cholesterol") == 28


def test_marker_text_normalization():
    assert normalize_marker_text("  Vitamin-D (25-OH) ") == "vitamin d 25 oh"
