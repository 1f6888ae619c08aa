"""
Mock provider fixtures for development and testing.

Recognition scenarios are raw model responses, so mock mode still
exercises the tolerant response parser:
- full_menu: 3 wines as a JSON array with mixed field aliases and menu prices
- single_bottle: one fenced JSON object (not an array)
- empty: prose with no wines
- vision_failure: the vision provider call raises
"""

import json
from typing import Optional

MOCK_SCENARIOS = ("full_menu", "single_bottle", "empty", "vision_failure")

MOCK_RECOGNITION_RESPONSES = {
    "full_menu": json.dumps([
        {
            "name": "Caymus Cabernet Sauvignon",
            "vintage": "2021",
            "producer": "Caymus Vineyards",
            "region": "Napa Valley",
            "varietal": "Cabernet Sauvignon",
            "price": "$68",
        },
        {
            "wine_name": "Sancerre Les Baronnes",
            "year": 2022,
            "winery": "Henri Bourgeois",
            "region": "Loire Valley",
            "grape_variety": "Sauvignon Blanc",
            "cost": 42,
        },
        {
            "name": "Barolo",
            "vintage": None,
            "producer": "Vietti",
            "appellation": "Piedmont",
            "grapes": ["Nebbiolo"],
        },
    ]),
    "single_bottle": (
        "```json\n"
        '{"wine_name": "Opus One", "year": 2018, "winery": "Opus One Winery", '
        '"region": "Oakville, Napa Valley", "varietal": "Bordeaux Blend"}\n'
        "```"
    ),
    "empty": "I could not identify any wine bottles or wine list entries in this image.",
}

MOCK_ENRICHMENTS = {
    "Caymus Cabernet Sauvignon": {
        "summary": "Plush and ripe, with dark cherry, cocoa and vanilla over velvety tannins.",
        "score": 91,
    },
    "Sancerre Les Baronnes": {
        "summary": "Crisp and flinty, with citrus zest, gooseberry and a chalky finish.",
        "score": 89,
    },
    "Barolo": {
        "summary": "Classic rose and tar aromatics with firm tannins that need a few years.",
        "score": 92,
    },
    "Opus One": {
        "summary": "Polished Bordeaux blend with cassis, graphite and a long, refined finish.",
        "score": 95,
    },
}

DEFAULT_MOCK_ENRICHMENT = {
    "summary": "A well-made wine showing typical character for its region and grape.",
    "score": 87,
}


def get_mock_recognition_response(scenario: str) -> str:
    """
    Get the raw model response for a recognition scenario.

    Raises:
        ValueError: unknown scenario, or "vision_failure" (no response exists)
    """
    if scenario not in MOCK_RECOGNITION_RESPONSES:
        raise ValueError(f"No mock recognition response for scenario: {scenario}")
    return MOCK_RECOGNITION_RESPONSES[scenario]


def get_mock_enrichment(wine_name: Optional[str]) -> dict:
    """Get canned summary/score for a wine name."""
    return dict(MOCK_ENRICHMENTS.get(wine_name or "", DEFAULT_MOCK_ENRICHMENT))
