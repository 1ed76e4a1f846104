"""
ITP report generator: compliance results, model analysis and a markdown
Inspection and Test Plan report for one inspection.

Compliance comes from the local ComplianceChecker. The model only writes
the narrative parts: the analysis, the recommendations and the report.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..analysis.compliance import ComplianceChecker, ComplianceCheckResult
from ..conversation import ConversationDriver
from ..models import InspectionData
from ..personas import (
    ANALYST_PROMPT,
    REPORT_WRITER_PROMPT,
    itp_analysis_message,
    itp_recommendations_message,
    itp_report_message,
)
from ..shaping import ITP_ANALYSIS_DEFAULTS, ITPReport, extract_json, parse_or_default
from .inspection import inspection_summary

LOGGER = logging.getLogger(__name__)

REPORT_TYPES = ("detailed", "summary", "non-conformance")
PERCENTAGE_FIELDS = ("compaction_density", "moisture_content", "optimum_moisture_content", "proctor_value")
FAILED_REPORT = "# Report Generation Failed\n\nUnable to generate report content."
NO_RECOMMENDATIONS = "Unable to generate recommendations"
MAX_RECOMMENDED_ACTIONS = 3


@dataclass
class ITPReportRequest:
    inspection: InspectionData
    standards: list[str] | None = None
    report_type: str = "detailed"
    include_recommendations: bool = True

    def __post_init__(self):
        if self.report_type not in REPORT_TYPES:
            raise ValueError(
                f"Unknown report type: {self.report_type}. Choose from {', '.join(REPORT_TYPES)}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ITPReportRequest:
        """Accepts {"inspection": {...}, ...} or a bare inspection dict."""
        inspection = data.get("inspection", data)
        standards = data.get("standards")
        return cls(
            inspection=InspectionData.from_dict(inspection),
            standards=[str(code) for code in standards] if standards else None,
            report_type=str(data.get("report_type") or "detailed"),
            include_recommendations=bool(data.get("include_recommendations", True)),
        )


def validate_inspection(inspection: InspectionData) -> list[str]:
    """Problems that make an inspection unusable; empty when it is valid."""
    problems = []
    if inspection.measurements is not None:
        for name in PERCENTAGE_FIELDS:
            value = getattr(inspection.measurements, name)
            if value is not None and not 0 <= value <= 100:
                problems.append(f"{name} must be between 0 and 100, got {value:g}")
    return problems


def extract_next_actions(
    recommendations: list[str], compliance: list[ComplianceCheckResult]
) -> list[str]:
    actions = [
        f"Obtain approval for: {hold_point.description}"
        for result in compliance
        if not result.compliant
        for hold_point in result.hold_points
        if hold_point.status == "pending"
    ]
    actions.extend(recommendations[:MAX_RECOMMENDED_ACTIONS])
    return actions


class ITPReportGenerator:
    def __init__(self, driver: ConversationDriver, checker: ComplianceChecker | None = None):
        self.driver = driver
        self.checker = checker or ComplianceChecker()

    def generate_report(
        self, request: ITPReportRequest, history: dict[str, Any] | None = None
    ) -> ITPReport:
        """
        Build a complete ITP report for one inspection.

        Args:
            request: Inspection, standards to check and report type
            history: Optional project history passed to the analysis

        Returns:
            ITPReport with compliance results, analysis, recommendations,
            next actions and the report markdown

        Raises:
            ValueError: If the inspection data is out of range
            UpstreamError: If an API call fails
        """
        inspection = request.inspection
        problems = validate_inspection(inspection)
        if problems:
            raise ValueError("Invalid inspection data: " + "; ".join(problems))

        LOGGER.info("Generating %s ITP report for %s inspection", request.report_type, inspection.type)
        compliance = self.checker.check_compliance(inspection, request.standards)
        compliance_dicts = [result.to_dict() for result in compliance]
        summary = inspection_summary(inspection)

        analysis, parsed = self.generate_analysis(summary, compliance_dicts, history)
        recommendations = (
            self.generate_recommendations(summary, compliance, analysis)
            if request.include_recommendations
            else []
        )
        report_markdown = self.generate_report_markdown(
            request.report_type, summary, compliance_dicts, analysis, recommendations
        )

        return ITPReport(
            id=f"itp-{int(time.time() * 1000)}",
            generated_at=datetime.now(timezone.utc).isoformat(),
            inspection_id=inspection.id,
            report_type=request.report_type,
            compliance=compliance_dicts,
            summary=analysis["overview"],
            detailed_analysis=analysis,
            recommendations=recommendations,
            next_actions=extract_next_actions(recommendations, compliance),
            report_markdown=report_markdown,
            parsed=parsed,
        )

    def generate_analysis(
        self,
        summary: dict[str, Any],
        compliance: list[dict[str, Any]],
        history: dict[str, Any] | None = None,
    ) -> tuple[dict[str, Any], bool]:
        result = self.driver.run(
            itp_analysis_message(summary, compliance, history),
            system_prompt=ANALYST_PROMPT,
            use_tools=False,
        )
        analysis, parsed = parse_or_default(result.answer, ITP_ANALYSIS_DEFAULTS)
        if not parsed:
            LOGGER.warning("ITP analysis answer was not JSON; using default analysis")
        analysis["findings"] = [str(finding) for finding in analysis["findings"]]
        analysis["risks"] = [risk for risk in analysis["risks"] if isinstance(risk, dict)]
        return analysis, parsed

    def generate_recommendations(
        self,
        summary: dict[str, Any],
        compliance: list[ComplianceCheckResult],
        analysis: dict[str, Any],
    ) -> list[str]:
        """
        Model recommendations as a JSON array of strings.

        Without a usable array, falls back to the compliance checker's own
        recommendations.
        """
        non_compliant = [result.standard for result in compliance if not result.compliant]
        result = self.driver.run(
            itp_recommendations_message(summary, analysis["findings"], non_compliant),
            system_prompt=ANALYST_PROMPT,
            use_tools=False,
        )
        parsed = extract_json(result.answer)
        if isinstance(parsed, dict):
            parsed = parsed.get("recommendations")
        if isinstance(parsed, list):
            recommendations = [item for item in parsed if isinstance(item, str) and item.strip()]
            if recommendations:
                return recommendations

        LOGGER.warning("No recommendation list in model answer; using checker recommendations")
        fallback = [rec for check in compliance for rec in check.recommendations]
        return fallback or [NO_RECOMMENDATIONS]

    def generate_report_markdown(
        self,
        report_type: str,
        summary: dict[str, Any],
        compliance: list[dict[str, Any]],
        analysis: dict[str, Any],
        recommendations: list[str],
    ) -> str:
        result = self.driver.run(
            itp_report_message(report_type, summary, compliance, analysis, recommendations),
            system_prompt=REPORT_WRITER_PROMPT,
            temperature=self.driver.config.report_temperature,
            use_tools=False,
        )
        return result.answer.strip() or FAILED_REPORT
