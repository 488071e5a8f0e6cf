"""Constants shared across FieldLog.

Taxonomic levels, display precedence and icon paths live here so that the
parser, the icon classifier and the output layer agree on one vocabulary.
"""

# Levels a Taxon can carry, from least to most specific.
# Field names use ``class_`` to avoid the Python keyword.
TAXON_LEVELS = ["kingdom", "division", "class_", "order"]

# Display names for each level (used in summaries and exports)
TAXON_LEVEL_LABELS = {
    "kingdom": "kingdom",
    "division": "division",
    "class_": "class",
    "order": "order",
}

# Most specific level first
DISPLAY_PRECEDENCE = ["order", "class_", "division", "kingdom"]

UNKNOWN_CATEGORY = "unknown"

COMMON_NAMES_PREFIX = "Also known as: "
TAXON_SUMMARY_SEPARATOR = " | "

UNTITLED_PHOTO = "untitled"
FLICKR_PHOTO_PAGE_URL = "https://www.flickr.com/photos/{owner}/{id}"

# Icon images per display category: (unselected, selected)
CATEGORY_ICONS = {
    "unknown": ("images/blank.png", "images/sblank.png"),
    "plants": ("images/plant.png", "images/splant.png"),
    "flowering plants": ("images/flower.png", "images/sflower.png"),
    "animals": ("images/blank.png", "images/sblank.png"),
    "fishes": ("images/fish.png", "images/sfish.png"),
    "mammals": ("images/animal.png", "images/sanimal.png"),
    "insects": ("images/insect.png", "images/sinsect.png"),
    "butterflies and moths": ("images/butterfly.png", "images/sbutterfly.png"),
    "birds": ("images/bird.png", "images/sbird.png"),
    "carnivores": ("images/carnivore.png", "images/scarnivore.png"),
    "crustaceans": ("images/crustacean.png", "images/scrustacean.png"),
    "rodents": ("images/rodent.png", "images/srodent.png"),
}

# Required columns for sighting input files
SIGHTING_INPUT_COLUMNS = ["name", "lat", "lng", "date"]
