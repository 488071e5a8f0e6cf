from fieldlog.constants import CATEGORY_ICONS
from fieldlog.icon_classifier import classify, icon_for
from fieldlog.types.data_classes import Taxon


def test_most_specific_level_wins():
    taxon = Taxon(kingdom="animals", class_="insects", order="butterflies and moths")
    assert classify(taxon) == "butterflies and moths"


def test_class_before_kingdom():
    assert classify(Taxon(kingdom="animals", class_="birds")) == "birds"


def test_division_before_kingdom():
    assert classify(Taxon(kingdom="plants", division="flowering plants")) == "flowering plants"


def test_kingdom_only():
    assert classify(Taxon(kingdom="plants")) == "plants"


def test_missing_classification_is_unknown():
    assert classify(None) == "unknown"
    assert classify(Taxon()) == "unknown"


def test_icon_for_known_category():
    assert icon_for("birds") == "images/bird.png"
    assert icon_for("birds", selected=True) == "images/sbird.png"


def test_icon_for_unrecognized_category_falls_back():
    assert icon_for("fungi") == CATEGORY_ICONS["unknown"][0]
    assert icon_for("fungi", selected=True) == CATEGORY_ICONS["unknown"][1]


def test_every_parser_category_has_an_icon():
    from fieldlog.parser.taxonomy_parser import TAXON_RULES

    for rule in TAXON_RULES:
        for category in rule.lookup.values():
            assert category in CATEGORY_ICONS
