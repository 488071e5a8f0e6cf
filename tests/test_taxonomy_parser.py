import pytest

from fieldlog.exceptions import NoCommonNamesFound
from fieldlog.parser.taxonomy_parser import (
    TAXON_RULES,
    TaxonRule,
    extract_common_names,
    extract_taxon,
    parse_field,
)
from fieldlog.types.data_classes import Taxon

from conftest import FOX_MARKUP, FUCHSIA_MARKUP, ROBIN_MARKUP


class TestParseField:
    def test_strips_all_whitespace(self):
        assert parse_field("| regnum =  [[Animal]] ia \n", "regnum") == "[[Animal]]ia"

    def test_missing_label_is_none(self):
        assert parse_field("| classis = [[Aves]]\n", "regnum") is None

    def test_empty_value_is_none(self):
        assert parse_field("| regnum =   \n| classis = [[Aves]]", "regnum") is None

    def test_value_stops_at_line_break(self):
        assert parse_field("regnum = [[Plant]]ae\nclassis = x", "regnum") == "[[Plant]]ae"

    def test_value_at_end_of_text(self):
        assert parse_field("| ordo = [[Lepidoptera]]", "ordo") == "[[Lepidoptera]]"

    def test_label_is_not_matched_inside_longer_label(self):
        text = "| subordo = [[Rhopalocera]]\n| ordo = [[Lepidoptera]]\n"
        assert parse_field(text, "ordo") == "[[Lepidoptera]]"

    def test_empty_text(self):
        assert parse_field("", "regnum") is None
        assert parse_field(None, "regnum") is None


class TestExtractTaxon:
    def test_bird(self):
        taxon = extract_taxon(ROBIN_MARKUP)
        assert taxon == Taxon(kingdom="animals", class_="birds")

    def test_carnivore(self):
        taxon = extract_taxon(FOX_MARKUP)
        assert taxon == Taxon(kingdom="animals", class_="mammals", order="carnivores")

    def test_flowering_plant_ignores_unknown_order(self):
        taxon = extract_taxon(FUCHSIA_MARKUP)
        assert taxon == Taxon(kingdom="plants", division="flowering plants")

    def test_butterfly(self):
        markup = "regnum = [[Animal]]ia\nclassis = [[Insect]]a\nordo = [[Lepidoptera]]\n"
        assert extract_taxon(markup) == Taxon(
            kingdom="animals", class_="insects", order="butterflies and moths"
        )

    def test_rodent(self):
        markup = "regnum = [[Animal]]ia\nclassis = [[Mammal]]ia\nordo = [[Rodent]]ia\n"
        assert extract_taxon(markup).order == "rodents"

    @pytest.mark.parametrize("classis,expected", [
        ("[[Aves]]", "birds"),
        ("[[Malacostraca]]", "crustaceans"),
        ("[[Actinopterygii]]", "fishes"),
    ])
    def test_animal_classes(self, classis, expected):
        assert extract_taxon(f"regnum = [[Animal]]ia\nclassis = {classis}\n").class_ == expected

    def test_unknown_kingdom(self):
        assert extract_taxon("regnum = [[Fungi]]\n") == Taxon(kingdom="unknown")
        assert not extract_taxon("regnum = [[Fungi]]\n").is_known

    def test_no_taxobox(self):
        assert extract_taxon("'''Mercury''' may refer to:") == Taxon(kingdom="unknown")

    def test_class_is_ignored_without_kingdom(self):
        taxon = extract_taxon("classis = [[bird|Aves]]\n")
        assert taxon.class_ is None

    def test_order_requires_matching_class(self):
        # Lepidoptera only counts under insects
        markup = "regnum = [[Animal]]ia\nclassis = [[Mammal]]ia\nordo = [[Lepidoptera]]\n"
        taxon = extract_taxon(markup)
        assert taxon.class_ == "mammals"
        assert taxon.order is None

    def test_plant_does_not_read_animal_class(self):
        markup = "regnum = [[Plant]]ae\nclassis = [[Insect]]a\n"
        assert extract_taxon(markup) == Taxon(kingdom="plants")

    def test_custom_rules(self):
        rules = TAXON_RULES + [
            TaxonRule("class_", "birds", "order", "ordo", {"[[Passeriformes]]": "perching birds"}),
        ]
        assert extract_taxon(ROBIN_MARKUP, rules).order == "perching birds"


class TestExtractCommonNames:
    def test_bold_spans_in_order(self):
        html = "<p>The <b>European robin</b>, or <b>Robin Redbreast</b>, is a bird.</p>"
        assert extract_common_names(html) == ["european robin", "robin redbreast"]

    def test_case_insensitive_tags(self):
        assert extract_common_names("<B>Red Fox</B>") == ["red fox"]

    def test_span_across_lines(self):
        assert extract_common_names("<b>hardy\nfuchsia</b>") == ["hardy\nfuchsia"]

    def test_no_spans_raises(self):
        with pytest.raises(NoCommonNamesFound):
            extract_common_names("<p><i>Mercury</i> may refer to:</p>")

    def test_empty_extract_raises(self):
        with pytest.raises(NoCommonNamesFound):
            extract_common_names("")
