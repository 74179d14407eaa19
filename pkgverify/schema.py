"""JSON schema for verification manifests."""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Optional

from jsonschema import Draft7Validator

_SEVERITY: Dict[str, Any] = {
    "type": "string",
    "pattern": "^(?i:error|warn|ignore)$",
}

_PATH_LIST: Dict[str, Any] = {
    "type": "array",
    "items": {"type": "string", "minLength": 1},
}

MANIFEST_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "pkgverify manifest",
    "type": "object",
    "required": ["meta", "context", "policy", "expect"],
    "additionalProperties": False,
    "properties": {
        "$schema": {"type": "string"},
        "meta": {
            "type": "object",
            "required": ["manifestVersion"],
            "additionalProperties": False,
            "properties": {"manifestVersion": {"const": 1}},
        },
        "context": {
            "type": "object",
            "required": ["packageRoot"],
            "additionalProperties": False,
            "properties": {"packageRoot": {"type": "string", "minLength": 1}},
        },
        "policy": {
            "type": "object",
            "required": ["defaultSeverity"],
            "additionalProperties": False,
            "properties": {
                "defaultSeverity": _SEVERITY,
                "failOnWarnings": {"type": "boolean"},
                "unexpectedFiles": _SEVERITY,
                "on": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "missingExpected": _SEVERITY,
                        "emptyPattern": _SEVERITY,
                        "deriveFailure": _SEVERITY,
                    },
                },
            },
        },
        "expect": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "files": _PATH_LIST,
                "patterns": _PATH_LIST,
                "atLeastOne": {"type": "array", "items": dict(_PATH_LIST, minItems=1)},
            },
        },
        "derive": {
            "type": "object",
            "required": ["sources", "rules", "targets"],
            "additionalProperties": False,
            "properties": {
                "sources": {
                    "type": "object",
                    "required": ["root", "include"],
                    "additionalProperties": False,
                    "properties": {
                        "root": {"type": "string", "minLength": 1},
                        "include": {"type": "string", "minLength": 1},
                        "exclude": _PATH_LIST,
                    },
                },
                "rules": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["mode"],
                        "additionalProperties": False,
                        "properties": {
                            "match": _PATH_LIST,
                            "default": {"type": "boolean"},
                            "mode": {"type": "string", "minLength": 1},
                        },
                    },
                },
                "targets": {
                    "type": "object",
                    "additionalProperties": _PATH_LIST,
                },
            },
        },
    },
}


def build_validator(schema: Optional[Mapping[str, Any]] = None) -> Draft7Validator:
    """Construct a validator for ``schema`` (the manifest schema by default).

    Callers own the returned instance and pass it to the manifest loader.
    """
    resolved = copy.deepcopy(dict(schema if schema is not None else MANIFEST_SCHEMA))
    Draft7Validator.check_schema(resolved)
    return Draft7Validator(resolved)


__all__ = ["MANIFEST_SCHEMA", "build_validator"]
