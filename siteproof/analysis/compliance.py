"""
Compliance checks of inspection data against Australian Standards.

Each checker returns a ComplianceCheckResult listing the individual
requirements it evaluated, so callers can show exactly what failed.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable

from ..knowledge import standards as kb
from ..knowledge.weather_rules import required_clay_drying_days
from ..models import InspectionData
from .weather import WeatherAnalyzer

LOGGER = logging.getLogger(__name__)

STANDARD_BY_INSPECTION_TYPE = {
    "earthworks": "AS_3798",
    "drainage": "AS_NZS_3500_3",
    "concrete": "AS_2870",
    "reinforcement": "AS_4671",
}

MAX_LAYER_THICKNESS = 300  # mm, loose layer before compaction
OMC_TOLERANCE = 2.0  # percentage points either side of OMC


@dataclass
class Requirement:
    description: str
    required: str
    actual: str
    status: str  # pass | fail | warning
    notes: str | None = None


@dataclass
class HoldPoint:
    description: str
    status: str = "pending"  # pending | approved | not_applicable


@dataclass
class ComplianceCheckResult:
    compliant: bool
    standard: str
    section: str
    requirements: list[Requirement] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    hold_points: list[HoldPoint] = field(default_factory=list)

    @property
    def failed_requirements(self) -> list[Requirement]:
        return [req for req in self.requirements if req.status == "fail"]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def minimum_drainage_gradient(pipe_diameter: float) -> float:
    """Minimum fall (%) for a stormwater pipe of the given diameter (mm)."""
    if pipe_diameter >= 300:
        return 0.5
    if pipe_diameter >= 225:
        return 0.67
    if pipe_diameter >= 150:
        return 0.83
    return 1.0


class ComplianceChecker:
    def __init__(self, weather_analyzer: WeatherAnalyzer | None = None):
        self.weather_analyzer = weather_analyzer or WeatherAnalyzer()

    def check_compliance(
        self, inspection: InspectionData, standards: Iterable[str] | None = None
    ) -> list[ComplianceCheckResult]:
        """
        Run every requested standard that applies to the inspection type.

        Args:
            inspection: Inspection to check
            standards: Standard codes to check; defaults to the one matching
                the inspection type

        Returns:
            One result per applicable standard (empty when none apply)
        """
        if standards is None:
            code = STANDARD_BY_INSPECTION_TYPE.get(inspection.type)
            standards = [code] if code else []

        results = []
        for code in standards:
            if STANDARD_BY_INSPECTION_TYPE.get(inspection.type) != code:
                LOGGER.debug("Skipping %s for %s inspection", code, inspection.type)
                continue
            if code == "AS_3798":
                results.append(self.check_earthworks(inspection))
            elif code == "AS_NZS_3500_3":
                results.append(self.check_drainage(inspection))
            elif code == "AS_2870":
                results.append(self.check_slab(inspection))
            elif code == "AS_4671":
                results.append(self.check_reinforcement(inspection))
        return results

    def check_earthworks(self, inspection: InspectionData) -> ComplianceCheckResult:
        """AS 3798: compaction, moisture, weather, clay drying time, layer thickness."""
        level = inspection.supervision_level
        level_section = kb.AS_3798["sections"][f"{level}_supervision"]
        required_pct = kb.required_compaction_percentage(level)
        result = ComplianceCheckResult(
            compliant=True,
            standard="AS_3798",
            section=f"Earthworks - {level_section['title']}",
        )
        m = inspection.measurements

        achieved = None
        if m is not None:
            achieved = m.proctor_value if m.proctor_value is not None else m.compaction_density
        if achieved is not None:
            passed = achieved >= required_pct
            result.requirements.append(
                Requirement(
                    description="Compaction density requirement",
                    required=f"{required_pct:g}% of MDD ({level.replace('_', ' ').title()})",
                    actual=f"{achieved:g}%",
                    status="pass" if passed else "fail",
                    notes=None if passed else "Insufficient compaction achieved",
                )
            )
            if not passed:
                result.compliant = False
                result.recommendations.extend(
                    [
                        f"Increase compaction to achieve minimum {required_pct:g}% of MDD",
                        "Consider additional roller passes or moisture adjustment",
                    ]
                )

        if (
            m is not None
            and inspection.material == "clay"
            and m.moisture_content is not None
            and m.optimum_moisture_content is not None
        ):
            low = m.optimum_moisture_content - OMC_TOLERANCE
            high = m.optimum_moisture_content + OMC_TOLERANCE
            within = low <= m.moisture_content <= high
            result.requirements.append(
                Requirement(
                    description="Moisture content",
                    required=f"{low:g}% to {high:g}% (OMC ±2%)",
                    actual=f"{m.moisture_content:g}%",
                    status="pass" if within else "warning",
                    notes=None if within else "Moisture content outside optimal range",
                )
            )
            if not within:
                result.recommendations.append(
                    "Add water to achieve optimal moisture content"
                    if m.moisture_content < low
                    else "Allow material to dry before compaction"
                )

        weather = self.weather_analyzer.analyze_weather_impact(inspection)
        if not weather.can_proceed:
            result.compliant = False
            for restriction in weather.restrictions:
                result.requirements.append(
                    Requirement(
                        description="Weather restriction",
                        required="Suitable weather conditions",
                        actual=inspection.weather.conditions,
                        status="fail",
                        notes=restriction,
                    )
                )

        rainfall = inspection.weather.recent_rainfall
        if inspection.material == "clay" and rainfall is not None:
            required_days = required_clay_drying_days(rainfall.amount)
            if required_days > 0 and rainfall.days_ago < required_days:
                result.compliant = False
                result.requirements.append(
                    Requirement(
                        description="Clay drying time after rainfall",
                        required=f"{required_days} days after {rainfall.amount:g}mm rainfall",
                        actual=f"{rainfall.days_ago} days since {rainfall.amount:g}mm rainfall",
                        status="fail",
                        notes="Insufficient drying time for clay placement per weather rules",
                    )
                )
                result.recommendations.extend(
                    [
                        f"Wait {required_days - rainfall.days_ago} more days before placing clay fill",
                        "Consider using alternative fill material if schedule is critical",
                        "Perform moisture content testing before proceeding",
                    ]
                )
        elif not weather.can_proceed:
            result.recommendations.extend(weather.recommendations)

        if m is not None and m.thickness is not None:
            too_thick = m.thickness > MAX_LAYER_THICKNESS
            result.requirements.append(
                Requirement(
                    description="Layer thickness before compaction",
                    required=f"{MAX_LAYER_THICKNESS}mm maximum",
                    actual=f"{m.thickness:g}mm",
                    status="fail" if too_thick else "pass",
                    notes="Layer too thick for effective compaction" if too_thick else None,
                )
            )
            if too_thick:
                result.compliant = False
                result.recommendations.append(
                    f"Reduce layer thickness to maximum {MAX_LAYER_THICKNESS}mm before compaction"
                )

        result.hold_points = [
            HoldPoint(description)
            for description in level_section["requirements"]["hold_points"]
        ]
        return result

    def check_drainage(self, inspection: InspectionData) -> ComplianceCheckResult:
        """AS/NZS 3500.3: pipe gradient and cover depth."""
        result = ComplianceCheckResult(
            compliant=True, standard="AS_NZS_3500_3", section="Stormwater drainage"
        )
        m = inspection.measurements
        diameter = m.pipe_diameter if m is not None else None

        if m is not None and m.gradient is not None and diameter is not None:
            min_gradient = minimum_drainage_gradient(diameter)
            passed = m.gradient >= min_gradient
            result.requirements.append(
                Requirement(
                    description="Minimum pipe gradient",
                    required=f"{min_gradient:g}%",
                    actual=f"{m.gradient:g}%",
                    status="pass" if passed else "fail",
                    notes=None if passed else "Insufficient gradient for proper drainage",
                )
            )
            if not passed:
                result.compliant = False
                result.recommendations.extend(
                    [
                        f"Adjust pipe gradient to achieve minimum {min_gradient:g}%",
                        "Check for settlement or installation errors",
                    ]
                )

        if m is not None and m.cover_depth is not None:
            if inspection.under_traffic:
                required_text = kb.get_cover_depth("under_traffic", "rigid")
            else:
                required_text = kb.get_cover_depth("no_traffic")["all_pipes"]
            min_cover = kb.leading_number(required_text)
            passed = m.cover_depth >= min_cover
            result.requirements.append(
                Requirement(
                    description="Minimum cover depth"
                    + (" under traffic" if inspection.under_traffic else ""),
                    required=required_text,
                    actual=f"{m.cover_depth:g}mm",
                    status="pass" if passed else "fail",
                    notes=None if passed else "Insufficient cover over pipe",
                )
            )
            if not passed:
                result.compliant = False
                result.recommendations.append(
                    f"Increase cover to minimum {min_cover:g}mm or provide concrete encasement"
                )

        result.hold_points = [
            HoldPoint("Trench formation and bedding approval"),
            HoldPoint("Pipe laid before backfill"),
            HoldPoint(
                "CCTV inspection for pipes >150mm diameter",
                "pending" if diameter is not None and diameter > 150 else "not_applicable",
            ),
            HoldPoint("Final connection to system"),
        ]
        return result

    def check_slab(self, inspection: InspectionData) -> ComplianceCheckResult:
        """AS 2870: edge beam depth for the site classification."""
        site_class = inspection.site_class
        classification = kb.get_site_class(site_class)
        if classification is None:
            raise ValueError(f"Invalid site classification: {site_class}")

        result = ComplianceCheckResult(
            compliant=True,
            standard="AS_2870",
            section=f"Site Class {site_class} - {classification['description']}",
        )
        m = inspection.measurements
        edge_beams = kb.AS_2870["sections"]["edge_beams"]["minimum_dimensions"]
        dimensions = edge_beams.get(f"class_{site_class}")

        if dimensions is None:
            result.requirements.append(
                Requirement(
                    description=f"Edge beam design for Class {site_class} site",
                    required="Specific engineering design",
                    actual="Not assessed",
                    status="warning",
                    notes=classification["typical_sites"],
                )
            )
            result.recommendations.append(
                f"Obtain engineer-designed footing details for Class {site_class} site"
            )
        elif m is not None and m.depth is not None:
            required_depth = kb.leading_number(dimensions["depth"])
            passed = m.depth >= required_depth
            result.requirements.append(
                Requirement(
                    description=f"Edge beam depth for Class {site_class} site",
                    required=f"{required_depth:g}mm minimum",
                    actual=f"{m.depth:g}mm",
                    status="pass" if passed else "fail",
                    notes=None if passed else "Insufficient footing depth for site classification",
                )
            )
            if not passed:
                result.compliant = False
                result.recommendations.extend(
                    [
                        f"Increase footing depth to minimum {required_depth:g}mm for Class {site_class} site",
                        "Verify site classification with geotechnical engineer",
                    ]
                )
        return result

    def check_reinforcement(self, inspection: InspectionData) -> ComplianceCheckResult:
        """AS/NZS 4671: concrete cover for the exposure class."""
        exposure = inspection.exposure_class
        conditions = kb.AS_4671["sections"]["cover_requirements"]["exposure_conditions"]
        if exposure not in conditions:
            raise ValueError(f"Invalid exposure classification: {exposure}")
        requirement = conditions[exposure]

        result = ComplianceCheckResult(
            compliant=True,
            standard="AS_4671",
            section=f"Steel reinforcement - exposure {exposure} ({requirement['description']})",
        )
        m = inspection.measurements
        actual = None
        if m is not None:
            actual = m.cover if m.cover is not None else m.thickness
        if actual is not None:
            min_cover = kb.leading_number(requirement["minimum_cover"])
            passed = actual >= min_cover
            result.requirements.append(
                Requirement(
                    description=f"Concrete cover for exposure class {exposure}",
                    required=requirement["minimum_cover"],
                    actual=f"{actual:g}mm",
                    status="pass" if passed else "fail",
                    notes=None if passed else "Insufficient concrete cover for reinforcement",
                )
            )
            if not passed:
                result.compliant = False
                result.recommendations.extend(
                    [
                        f"Increase concrete cover to minimum {min_cover:g}mm",
                        "Use appropriate spacers to maintain cover during pour",
                    ]
                )
        return result
