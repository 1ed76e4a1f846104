"""get_australian_standard: reference lookup into the standards tables."""
from __future__ import annotations

from typing import Any

from ..knowledge import standards as kb
from .base import ToolDefinition


def get_australian_standard(params: dict[str, Any]) -> dict[str, Any]:
    code = str(params["standard_code"])
    section = params.get("section")

    standard = kb.STANDARDS.get(code)
    if standard is None:
        return {
            "error": f"Standard {code} not found",
            "available_standards": sorted(kb.STANDARDS),
        }

    if section:
        content = kb.get_standard(code, section)
        if content is None:
            return {
                "error": f"Section {section} not found in {code}",
                "available_sections": list(standard["sections"]),
            }
        return {
            "standard_code": code,
            "title": standard["title"],
            "year": standard["year"],
            "section": section,
            "content": content,
        }

    return {
        "standard_code": code,
        "title": standard["title"],
        "year": standard["year"],
        "available_sections": list(standard["sections"]),
        "content": standard["sections"],
    }


GET_AUSTRALIAN_STANDARD = ToolDefinition(
    name="get_australian_standard",
    description=(
        "Retrieves Australian Standard requirements for civil construction. "
        "Returns the full standard or one section (e.g. supervision levels, "
        "gradients, site classification, cover requirements)."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "standard_code": {
                "type": "string",
                "enum": list(kb.STANDARDS),
                "description": "Standard code, e.g. AS_3798 for earthworks",
            },
            "section": {
                "type": "string",
                "description": "Optional section key, e.g. level_1_supervision",
            },
        },
        "required": ["standard_code"],
    },
    handler=get_australian_standard,
)

TOOLS = [GET_AUSTRALIAN_STANDARD]
