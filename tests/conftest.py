import copy
import logging

import pytest

from specgate.contract.decode import decode_capability
from specgate.contract.models import Intent

STAR_RATING = {
    "capabilityId": "star-rating",
    "classification": "input",
    "displayName": "Star Rating",
    "supportedFeatures": [{"featureId": "halfStars"}, {"featureId": "readOnly"}, "customColors"],
    "limits": {"maxStars": 10, "allowedSize": ["small", "medium", "large"]},
    "forbidden": [
        {
            "behavior": "externalNetworkCalls",
            "reason": "Controls must not call external services.",
            "alternative": "Use the bound dataset.",
            "patterns": [r"\bfetch\s*\("],
        }
    ],
}

VALID_SPEC = {
    "version": "1.0",
    "componentType": "star-rating",
    "componentId": "comp-001",
    "componentName": "StarRating",
    "namespace": "Contoso",
    "displayName": "Star Rating",
    "description": "Lets users rate a record from one to five stars.",
    "capabilities": {
        "capabilityId": "star-rating",
        "features": ["halfStars"],
        "customizations": {"stars": 5},
    },
    "properties": [
        {
            "name": "value",
            "displayName": "Value",
            "dataType": "Whole.None",
            "usage": "bound",
            "required": True,
            "description": "Current rating",
        },
        {
            "name": "maxValue",
            "displayName": "Max value",
            "dataType": "Whole.None",
            "usage": "input",
        },
    ],
    "resources": {"code": "index.ts", "css": ["css/StarRating.css"], "resx": ["strings/StarRating.resx"]},
}


@pytest.fixture
def capability_payload() -> dict:
    return copy.deepcopy(STAR_RATING)


@pytest.fixture
def star_rating(capability_payload):
    return decode_capability(capability_payload)


@pytest.fixture
def spec_payload() -> dict:
    return copy.deepcopy(VALID_SPEC)


@pytest.fixture
def intent() -> Intent:
    return Intent(
        classification="input",
        component_type="star-rating",
        behavior={"interactive": True},
        accessibility={"keyboard": True},
    )


@pytest.fixture(autouse=True)
def _reset_specgate_logger():
    yield
    # cli.main() installs handlers on "specgate" with propagate=False.
    logger = logging.getLogger("specgate")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
