"""
Canonical subcategory taxonomy used for display labels and placeholder images.

Each canonical slug maps to exactly one label and one placeholder. Unknown
slugs fall back to "Miscellaneous" and the default placeholder, so raw slugs
never leak into the UI.
"""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

PLACEHOLDER_ROOT = "/businessImagePlaceholders"

SUBCATEGORY_LABELS: dict[str, str] = {
    "restaurants": "Restaurants",
    "cafes": "Cafés & Coffee",
    "bars": "Bars & Pubs",
    "fast-food": "Fast Food",
    "fine-dining": "Fine Dining",
    "gyms": "Gyms & Fitness",
    "spas": "Spas",
    "salons": "Hair Salons",
    "wellness": "Wellness Centers",
    "nail-salons": "Nail Salons",
    "education-learning": "Education & Learning",
    "transport-travel": "Transport & Travel",
    "finance-insurance": "Finance & Insurance",
    "plumbers": "Plumbers",
    "electricians": "Electricians",
    "legal-services": "Legal Services",
    "hiking": "Hiking",
    "cycling": "Cycling",
    "water-sports": "Water Sports",
    "camping": "Camping",
    "events-festivals": "Events & Festivals",
    "sports-recreation": "Sports & Recreation",
    "nightlife": "Nightlife",
    "comedy-clubs": "Comedy Clubs",
    "cinemas": "Cinemas",
    "museums": "Museums",
    "galleries": "Art Galleries",
    "theaters": "Theaters",
    "concerts": "Concerts",
    "family-activities": "Family Activities",
    "pet-services": "Pet Services",
    "childcare": "Childcare",
    "veterinarians": "Veterinarians",
    "fashion": "Fashion & Clothing",
    "electronics": "Electronics",
    "home-decor": "Home Decor",
    "books": "Books & Media",
    "miscellaneous": "Miscellaneous",
}

# Parent interest -> placeholder folder, and the subcategories under it.
INTEREST_GROUPS: dict[str, tuple[str, list[str]]] = {
    "food-drink": ("food-drink", ["restaurants", "cafes", "bars", "fast-food", "fine-dining"]),
    "beauty-wellness": ("beauty-wellness", ["gyms", "spas", "salons", "wellness", "nail-salons"]),
    "professional-services": (
        "professional-services",
        ["education-learning", "transport-travel", "finance-insurance", "plumbers",
         "electricians", "legal-services"],
    ),
    "outdoors-adventure": ("outdoors-adventure", ["hiking", "cycling", "water-sports", "camping"]),
    "experiences-entertainment": (
        "entertainment-experiences",
        ["events-festivals", "sports-recreation", "nightlife", "comedy-clubs", "cinemas"],
    ),
    "arts-culture": ("arts-culture", ["museums", "galleries", "theaters", "concerts"]),
    "family-pets": ("family-pets", ["family-activities", "pet-services", "childcare", "veterinarians"]),
    "shopping-lifestyle": ("shopping-lifestyle", ["fashion", "electronics", "home-decor", "books"]),
}

# File names that differ from the slug.
_PLACEHOLDER_FILES: dict[str, str] = {
    "cafes": "cafes-coffee",
    "bars": "bars-pubs",
    "gyms": "gyms-fitness",
    "salons": "hair-salons",
    "wellness": "wellness-centers",
    "galleries": "art-galleries",
    "theaters": "theatres",
    "fashion": "fashion-clothing",
    "books": "books-media",
}

DEFAULT_PLACEHOLDER = f"{PLACEHOLDER_ROOT}/miscellaneous/miscellaneous.jpeg"


def _build_placeholders() -> dict[str, str]:
    mapping = {"miscellaneous": DEFAULT_PLACEHOLDER}
    for folder, slugs in INTEREST_GROUPS.values():
        for slug in slugs:
            mapping[slug] = f"{PLACEHOLDER_ROOT}/{folder}/{_PLACEHOLDER_FILES.get(slug, slug)}.jpg"
    return mapping


SUBCATEGORY_PLACEHOLDERS: dict[str, str] = _build_placeholders()

_SUBCATEGORY_TO_INTEREST: dict[str, str] = {
    slug: interest for interest, (_, slugs) in INTEREST_GROUPS.items() for slug in slugs
}


def _normalize(slug: str | None) -> str:
    return slug.strip().lower() if isinstance(slug, str) else ""


def is_canonical_slug(slug: str | None) -> bool:
    return _normalize(slug) in SUBCATEGORY_LABELS


def get_subcategory_label(slug: str | None) -> str:
    return SUBCATEGORY_LABELS.get(_normalize(slug), "Miscellaneous")


def get_interest_for_subcategory(slug: str | None) -> str | None:
    return _SUBCATEGORY_TO_INTEREST.get(_normalize(slug))


def get_subcategory_placeholder(slug: str | None) -> str:
    key = _normalize(slug)
    if not key:
        return DEFAULT_PLACEHOLDER
    path = SUBCATEGORY_PLACEHOLDERS.get(key)
    if path is None:
        logger.debug("No placeholder for slug %r, using default", key)
        return DEFAULT_PLACEHOLDER
    return path


def is_placeholder_image(image_url: str | None) -> bool:
    if not image_url or not isinstance(image_url, str):
        return False
    return (
        "/businessImagePlaceholders/" in image_url
        or "/png/" in image_url
        or image_url.endswith(".png")
    )
