"""Compliance tools: standards verification and AS 3798 test frequency."""
from __future__ import annotations

import math
import re
from typing import Any

from ..analysis.compliance import ComplianceChecker
from ..knowledge import standards as kb
from ..models import InspectionData
from .base import ToolDefinition

ALL_STANDARDS = ("AS_3798", "AS_NZS_3500_3", "AS_2870", "AS_4671")


def verify_compliance(params: dict[str, Any]) -> dict[str, Any]:
    inspection = InspectionData.from_dict(
        {
            "type": params["inspection_type"],
            "location": "Tool Check Location",
            "material": params.get("material"),
            "measurements": params.get("measurements"),
            "recent_rainfall": params.get("recent_rainfall"),
            "supervision_level": params.get("supervision_level"),
            "site_class": params.get("site_class"),
            "exposure_class": params.get("exposure_class"),
            "under_traffic": params.get("under_traffic", True),
        }
    )
    results = ComplianceChecker().check_compliance(inspection, ALL_STANDARDS)

    return {
        "inspection_type": inspection.type,
        "compliant": all(result.compliant for result in results),
        "standards_checked": [result.standard for result in results],
        "results": [
            {
                "standard": result.standard,
                "section": result.section,
                "compliant": result.compliant,
                "failed_requirements": [
                    {
                        "description": req.description,
                        "required": req.required,
                        "actual": req.actual,
                        "notes": req.notes,
                    }
                    for req in result.failed_requirements
                ],
                "recommendations": result.recommendations,
                "hold_points": [hp.description for hp in result.hold_points],
            }
            for result in results
        ],
    }


def calculate_test_frequency(params: dict[str, Any]) -> dict[str, Any]:
    level = str(params["supervision_level"])
    fill_volume = float(params["fill_volume"])
    if fill_volume < 0:
        raise ValueError("fill_volume cannot be negative")

    section = kb.AS_3798["sections"].get(f"{level}_supervision")
    if section is None:
        return {"error": f"Supervision level {level} not found"}
    requirements = section["requirements"]
    frequency = requirements["compaction"]["test_frequency"]

    match = re.search(r"1 test per (\d+)m³", frequency)
    volume_per_test = int(match.group(1)) if match else 500

    material = params.get("material_type")
    material_specs = kb.AS_3798["sections"]["material_requirements"]["specifications"]
    return {
        "supervision_level": level,
        "fill_volume": fill_volume,
        "volume_per_test": volume_per_test,
        "tests_required": math.ceil(fill_volume / volume_per_test),
        "frequency": frequency,
        "compaction_requirement": requirements["compaction"]["minimum_density"],
        "test_method": requirements["compaction"]["test_method"],
        "layer_thickness": kb.AS_3798["sections"]["layer_thickness"]["limits"],
        "hold_points": requirements["hold_points"],
        "material_specific": material_specs.get(material) if material else None,
    }


VERIFY_COMPLIANCE = ToolDefinition(
    name="verify_compliance",
    description=(
        "Verify compliance with Australian Standards based on inspection data. "
        "Checks measurements, materials, and conditions against requirements. "
        "Returns compliance status, failed requirements, and recommendations."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "inspection_type": {
                "type": "string",
                "enum": ["earthworks", "drainage", "concrete", "reinforcement"],
            },
            "measurements": {
                "type": "object",
                "properties": {
                    "compaction_density": {"type": "number", "description": "Percentage of MDD"},
                    "moisture_content": {"type": "number", "description": "Percentage"},
                    "optimum_moisture_content": {"type": "number", "description": "Percentage"},
                    "proctor_value": {"type": "number", "description": "Percentage"},
                    "depth": {"type": "number", "description": "mm"},
                    "thickness": {"type": "number", "description": "mm"},
                    "gradient": {"type": "number", "description": "Percentage"},
                    "pipe_diameter": {"type": "number", "description": "mm"},
                    "cover_depth": {"type": "number", "description": "mm of cover over pipe"},
                    "cover": {"type": "number", "description": "mm of concrete cover to steel"},
                },
            },
            "material": {
                "type": "string",
                "enum": ["clay", "sand", "rock", "concrete", "steel"],
            },
            "recent_rainfall": {
                "type": "object",
                "properties": {
                    "amount": {"type": "number", "description": "mm of rain"},
                    "days_ago": {"type": "number", "description": "Days since rainfall"},
                },
            },
            "supervision_level": {"type": "string", "enum": list(kb.SUPERVISION_LEVELS)},
            "site_class": {"type": "string", "enum": ["A", "S", "M", "H1", "H2", "E", "P"]},
            "exposure_class": {"type": "string", "enum": ["A1", "A2", "B1", "B2", "C"]},
            "under_traffic": {"type": "boolean"},
        },
        "required": ["inspection_type"],
    },
    handler=verify_compliance,
)

CALCULATE_TEST_FREQUENCY = ToolDefinition(
    name="calculate_test_frequency",
    description=(
        "Calculate required testing frequency based on AS 3798. Determines number "
        "of tests needed based on supervision level and volume. Returns test "
        "requirements and hold points."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "supervision_level": {
                "type": "string",
                "enum": list(kb.SUPERVISION_LEVELS),
                "description": "AS 3798 supervision level (1=high risk, 2=medium, 3=low)",
            },
            "fill_volume": {"type": "number", "description": "Volume of fill in cubic meters"},
            "material_type": {"type": "string", "enum": ["clay", "sand", "rock", "mixed"]},
        },
        "required": ["supervision_level", "fill_volume"],
    },
    handler=calculate_test_frequency,
)

TOOLS = [VERIFY_COMPLIANCE, CALCULATE_TEST_FREQUENCY]
