"""
JSON schemas describing the accepted settings files.

Deutsch:
    JSON-Schemata für die unterstützten Einstellungsdateien.
"""

from __future__ import annotations

__all__ = ["SETTINGS_SCHEMA", "load_schema", "settings_validator"]

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Dict

from jsonschema import Draft7Validator

SETTINGS_SCHEMA = "settings.schema.json"


def load_schema(name: str) -> Dict[str, Any]:
    """Read a bundled schema document by file name."""

    return json.loads(resources.files(__name__).joinpath(name).read_text(encoding="utf-8"))


@lru_cache(maxsize=None)
def settings_validator(name: str = SETTINGS_SCHEMA) -> Draft7Validator:
    """
    Return a checked validator for a bundled settings schema.

    The schema itself is checked against the Draft 7 metaschema first, so a
    broken bundled schema fails loudly instead of accepting everything.

    Deutsch:
        Liefert einen geprüften Validator für ein mitgeliefertes Schema.
    """

    schema = load_schema(name)
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)
