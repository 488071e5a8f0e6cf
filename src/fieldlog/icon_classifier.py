"""Display category selection for FieldLog.

Every sighting of a species is drawn with one icon, chosen from the most
specific level of the species' classification.
"""

from typing import Optional

from fieldlog.constants import CATEGORY_ICONS, DISPLAY_PRECEDENCE, UNKNOWN_CATEGORY
from fieldlog.types.data_classes import Taxon


def classify(taxon: Optional[Taxon]) -> str:
    """Return the display category of a classification.

    Precedence is order > class > division > kingdom; an empty or missing
    classification is ``"unknown"``.
    """
    if taxon is None:
        return UNKNOWN_CATEGORY
    for level in DISPLAY_PRECEDENCE:
        value = getattr(taxon, level, None)
        if value:
            return value
    return UNKNOWN_CATEGORY


def icon_for(category: str, selected: bool = False) -> str:
    """Return the icon image path for a display category.

    Unrecognized categories use the unknown icon.
    """
    unselected_icon, selected_icon = CATEGORY_ICONS.get(category, CATEGORY_ICONS[UNKNOWN_CATEGORY])
    return selected_icon if selected else unselected_icon
