"""Taxonomy parsing for FieldLog.

This module extracts a structured classification and a list of common names
from encyclopedia content. Two inputs are handled:

- the raw wiki markup of the article's lead section, whose taxobox carries
  labeled fields such as ``regnum = [[Animal]]ia``
- the HTML summary extract, whose first sentence bold-wraps the subject's
  common names

The classification lookup is table-driven: each TaxonRule names the parent
level and value it depends on, the markup label to read, and the table that
maps a raw field value to a classification name. Rules are applied in order,
so parents must precede their children. Adding a taxonomic branch means
adding a rule, not another nested branch.

Markup from a third-party encyclopedia has no stable schema, so extraction
is permissive: missing labels and unknown values simply leave that level
empty. The common-name convention is strict: a summary without bold spans
is not an organism page (a disambiguation page, for example).
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from fieldlog.constants import UNKNOWN_CATEGORY
from fieldlog.exceptions import NoCommonNamesFound
from fieldlog.types.data_classes import Taxon

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxonRule:
    """One step of the classification lookup."""

    # Level/value that must already be resolved for this rule to apply.
    # A rule without a parent always applies.
    parent_level: Optional[str]
    parent_value: Optional[str]

    # Level this rule resolves and the markup label it reads
    level: str
    label: str

    # Raw field value (whitespace removed) -> classification name
    lookup: Dict[str, str]


TAXON_RULES: List[TaxonRule] = [
    TaxonRule(None, None, "kingdom", "regnum", {
        "[[Plant]]ae": "plants",
        "[[Animal]]ia": "animals",
    }),
    TaxonRule("kingdom", "plants", "division", "unranked_divisio", {
        "[[Angiosperms]]": "flowering plants",
    }),
    TaxonRule("kingdom", "animals", "class_", "classis", {
        "[[Insect]]a": "insects",
        "[[bird|Aves]]": "birds",
        "[[Aves]]": "birds",
        "[[Malacostraca]]": "crustaceans",
        "[[Actinopterygii]]": "fishes",
        "[[Mammal]]ia": "mammals",
    }),
    TaxonRule("class_", "insects", "order", "ordo", {
        "[[Lepidoptera]]": "butterflies and moths",
    }),
    TaxonRule("class_", "mammals", "order", "ordo", {
        "[[Rodent]]ia": "rodents",
        "[[Carnivora]]": "carnivores",
    }),
]

_WHITESPACE_RE = re.compile(r"\s+")
_BOLD_SPAN_RE = re.compile(r"<b>(.*?)</b>", flags=re.IGNORECASE | re.DOTALL)
_BOLD_TAG_RE = re.compile(r"</?b>", flags=re.IGNORECASE)

_label_patterns: Dict[str, "re.Pattern[str]"] = {}


def _label_pattern(label: str) -> "re.Pattern[str]":
    # The label must not be the tail of a longer name (``ordo`` vs ``subordo``)
    pattern = _label_patterns.get(label)
    if pattern is None:
        pattern = re.compile(rf"(?<![A-Za-z_]){re.escape(label)}[ \t]*=([^\n]*)")
        _label_patterns[label] = pattern
    return pattern


def parse_field(text: str, label: str) -> Optional[str]:
    """Return the raw value of a labeled markup field.

    The value is everything between the field's ``=`` and the next line
    break, with all whitespace removed.

    Args:
        text: Raw wiki markup
        label: Field label, e.g. ``regnum``

    Returns:
        The raw value, or None if the field is not present or empty
    """
    if not text:
        return None
    match = _label_pattern(label).search(text)
    if match is None:
        return None
    value = _WHITESPACE_RE.sub("", match.group(1))
    return value or None


def extract_taxon(raw_text: str, rules: Optional[List[TaxonRule]] = None) -> Taxon:
    """Extract a structured classification from raw wiki markup.

    Args:
        raw_text: Raw markup of the article's lead section
        rules: Optional rule table, defaults to TAXON_RULES

    Returns:
        A Taxon; ``Taxon(kingdom="unknown")`` if no known kingdom was found
    """
    resolved: Dict[str, str] = {}
    for rule in rules if rules is not None else TAXON_RULES:
        if rule.level in resolved:
            continue
        if rule.parent_level is not None and resolved.get(rule.parent_level) != rule.parent_value:
            continue
        raw_value = parse_field(raw_text, rule.label)
        if raw_value is None:
            continue
        value = rule.lookup.get(raw_value)
        if value is None:
            logger.debug(f"Unrecognized {rule.label} value: {raw_value}")
            continue
        resolved[rule.level] = value

    if "kingdom" not in resolved:
        return Taxon(kingdom=UNKNOWN_CATEGORY)
    return Taxon(**resolved)


def extract_common_names(extract_html: str) -> List[str]:
    """Extract common names from an HTML summary fragment.

    Args:
        extract_html: HTML summary of the article

    Returns:
        Lower-cased contents of every bold span, in document order

    Raises:
        NoCommonNamesFound: If the fragment has no bold spans
    """
    spans = _BOLD_SPAN_RE.findall(extract_html or "")
    if not spans:
        raise NoCommonNamesFound("No bold-emphasis spans in summary extract")
    return [_BOLD_TAG_RE.sub("", span).lower() for span in spans]
