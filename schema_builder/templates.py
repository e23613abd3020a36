"""
Canned schemas used to seed a new document.

Templates are written in the persisted (camelCase) shape without ids and
parsed on every call, so each call hands out a fresh tree with fresh ids.
Nothing is cached at module level.
"""

import logging
from typing import Any, Dict, List, Tuple

from .exceptions import TemplateNotFoundError
from .field_model import JsonSchema, schema_from_dict

logger = logging.getLogger(__name__)


def _user_template() -> Dict[str, Any]:
    return {
        "name": "User Profile",
        "fields": [
            {"name": "id", "type": "number", "logic": {"required": True}},
            {"name": "firstName", "type": "text",
             "logic": {"required": True, "minLength": 2, "maxLength": 50}},
            {"name": "lastName", "type": "text",
             "logic": {"required": True, "minLength": 2, "maxLength": 50}},
            {"name": "email", "type": "email", "logic": {"required": True}},
            {"name": "dateOfBirth", "type": "date", "logic": {"required": False}},
            {"name": "isActive", "type": "boolean", "logic": {"required": True}},
        ]
    }


def _product_template() -> Dict[str, Any]:
    return {
        "name": "E-commerce Product",
        "fields": [
            {"name": "id", "type": "number", "logic": {"required": True}},
            {"name": "name", "type": "text",
             "logic": {"required": True, "minLength": 3, "maxLength": 100}},
            {"name": "description", "type": "text",
             "logic": {"required": False, "maxLength": 500}},
            {"name": "price", "type": "number", "logic": {"required": True, "min": 0}},
            {"name": "category", "type": "text",
             "logic": {"required": True,
                       "enum": ["Electronics", "Clothing", "Books", "Home", "Sports"]}},
            {"name": "inStock", "type": "boolean", "logic": {"required": True}},
            {
                "name": "tags",
                "type": "array",
                "logic": {"minItems": 0, "maxItems": 10},
                "arrayItemType": {
                    "name": "tag",
                    "type": "object",
                    "logic": {"required": False},
                    "children": [
                        {"name": "name", "type": "text", "logic": {"required": True}},
                        {"name": "color", "type": "text",
                         "logic": {"required": False, "enum": ["red", "blue", "green", "yellow"]}},
                    ]
                }
            },
        ]
    }


def _address_template() -> Dict[str, Any]:
    return {
        "name": "Address",
        "fields": [
            {"name": "street", "type": "text",
             "logic": {"required": True, "minLength": 5, "maxLength": 100}},
            {"name": "city", "type": "text",
             "logic": {"required": True, "minLength": 2, "maxLength": 50}},
            {"name": "state", "type": "text",
             "logic": {"required": True, "minLength": 2, "maxLength": 50}},
            {"name": "zipCode", "type": "text",
             "logic": {"required": True, "pattern": "^[0-9]{5}(-[0-9]{4})?$"}},
            {"name": "country", "type": "text",
             "logic": {"required": True, "enum": ["USA", "Canada", "UK", "Germany", "France"]}},
        ]
    }


def _blog_template() -> Dict[str, Any]:
    return {
        "name": "Blog Post",
        "fields": [
            {"name": "id", "type": "number", "logic": {"required": True}},
            {"name": "title", "type": "text",
             "logic": {"required": True, "minLength": 10, "maxLength": 200}},
            {"name": "slug", "type": "text",
             "logic": {"required": True, "pattern": "^[a-z0-9-]+$"}},
            {"name": "content", "type": "text", "logic": {"required": True, "minLength": 100}},
            {"name": "publishedAt", "type": "date", "logic": {"required": False}},
            {"name": "isPublished", "type": "boolean", "logic": {"required": True}},
            {
                "name": "author",
                "type": "object",
                "logic": {"required": True},
                "children": [
                    {"name": "name", "type": "text", "logic": {"required": True}},
                    {"name": "email", "type": "email", "logic": {"required": True}},
                ]
            },
            {
                "name": "tags",
                "type": "array",
                "logic": {"minItems": 1, "maxItems": 5},
                "arrayItemType": {
                    "name": "tag",
                    "type": "object",
                    "logic": {"required": False},
                    "children": [
                        {"name": "name", "type": "text", "logic": {"required": True}},
                        {"name": "category", "type": "text", "logic": {"required": False}},
                        {
                            "name": "metadata",
                            "type": "object",
                            "logic": {"required": False},
                            "children": [
                                {"name": "popularity", "type": "number",
                                 "logic": {"required": False, "min": 0, "max": 100}},
                                {
                                    "name": "related",
                                    "type": "array",
                                    "logic": {"minItems": 0, "maxItems": 5},
                                    "arrayItemType": {
                                        "name": "relatedTag", "type": "text",
                                        "logic": {"required": False}
                                    }
                                },
                            ]
                        },
                    ]
                }
            },
        ]
    }


def _nested_arrays_template() -> Dict[str, Any]:
    return {
        "name": "Nested Arrays Test",
        "fields": [
            {"name": "id", "type": "number", "logic": {"required": True}},
            {
                "name": "departments",
                "type": "array",
                "logic": {"minItems": 1, "maxItems": 5},
                "arrayItemType": {
                    "name": "department",
                    "type": "array",
                    "logic": {"minItems": 1, "maxItems": 10},
                    "arrayItemType": {
                        "name": "employee",
                        "type": "object",
                        "logic": {"required": True},
                        "children": [
                            {"name": "name", "type": "text", "logic": {"required": True}},
                            {"name": "role", "type": "text", "logic": {"required": True}},
                        ]
                    }
                }
            },
        ]
    }


def _bounded_text(name: str, min_length: int, max_length: int) -> Dict[str, Any]:
    return {"name": name, "type": "text",
            "logic": {"required": True, "minLength": min_length, "maxLength": max_length}}


def _array_of(name: str, min_items: int, max_items: int, item: Dict[str, Any]) -> Dict[str, Any]:
    return {"name": name, "type": "array",
            "logic": {"minItems": min_items, "maxItems": max_items},
            "arrayItemType": item}


def _sample_worlds_template() -> Dict[str, Any]:
    coordinate = {"name": "coordinate", "type": "number", "logic": {"required": True}}
    history_entry = {
        "name": "historyEntry",
        "type": "object",
        "children": [
            _bounded_text("timestamp", 8, 25),
            _bounded_text("status", 2, 15),
        ]
    }
    station = {
        "name": "station",
        "type": "object",
        "children": [
            _bounded_text("id", 3, 10),
            _array_of("alerts", 2, 4, _bounded_text("alert", 5, 20)),
            _array_of("history", 2, 3, history_entry),
        ]
    }
    zone = {
        "name": "zone",
        "type": "object",
        "children": [
            _bounded_text("zoneId", 2, 10),
            _array_of("coordinates", 2, 4,
                      _array_of("coordinateGroup", 2, 2, coordinate)),
            {
                "name": "metrics",
                "type": "object",
                "children": [
                    _array_of("temperature", 2, 3,
                              {"name": "temp", "type": "number", "logic": {"required": True}}),
                    _array_of("status", 2, 3, _bounded_text("statusValue", 3, 15)),
                ]
            },
            _array_of("stations", 1, 2, station),
        ]
    }
    region = {
        "name": "region",
        "type": "object",
        "children": [
            _bounded_text("name", 3, 20),
            _array_of("zones", 1, 3, zone),
        ]
    }
    version = {
        "name": "version",
        "type": "object",
        "children": [
            _bounded_text("version", 5, 10),
            _array_of("changes", 2, 3, _bounded_text("change", 4, 15)),
        ]
    }
    return {
        "name": "Complex World Schema",
        "fields": [
            {
                "name": "world",
                "type": "object",
                "children": [_array_of("regions", 2, 3, region)]
            },
            {
                "name": "meta",
                "type": "object",
                "children": [
                    _bounded_text("generatedAt", 10, 30),
                    _array_of("sources", 2, 3,
                              _array_of("sourceGroup", 2, 2, _bounded_text("source", 6, 15))),
                    _array_of("tags", 2, 4, _bounded_text("tag", 3, 10)),
                    _array_of("versionHistory", 2, 3, version),
                ]
            },
        ]
    }


_TEMPLATE_BUILDERS = {
    'user': _user_template,
    'product': _product_template,
    'address': _address_template,
    'blog': _blog_template,
    'nested_arrays': _nested_arrays_template,
    'sample_worlds': _sample_worlds_template,
}


def create_schema_templates() -> Dict[str, JsonSchema]:
    """
    Build every catalog template.

    Returns:
        Mapping of template key to a freshly built JsonSchema; ids differ
        between calls
    """
    return {key: schema_from_dict(builder()) for key, builder in _TEMPLATE_BUILDERS.items()}


def list_templates() -> List[Tuple[str, str]]:
    """Return (key, display name) pairs in catalog order."""
    return [(key, builder()["name"]) for key, builder in _TEMPLATE_BUILDERS.items()]


def get_template(key: str) -> JsonSchema:
    """
    Build a single template by key.

    Raises:
        TemplateNotFoundError: If the key is not in the catalog
    """
    builder = _TEMPLATE_BUILDERS.get(key)
    if builder is None:
        raise TemplateNotFoundError(key, list(_TEMPLATE_BUILDERS))
    logger.debug(f"Building schema template: {key}")
    return schema_from_dict(builder())
