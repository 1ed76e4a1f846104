"""
Inspection analyzer: tool-assisted analysis of a single site inspection.

The model drives the tool loop; inspection data fills in tool inputs it
leaves out. The overall pass/fail/warning status is decided locally from
the tool results, never taken from the model's text.
"""
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..conversation import ConversationDriver, InputPreparer
from ..models import InspectionData, ToolExecutionResult
from ..personas import (
    INSPECTOR_PROMPT,
    REPORT_WRITER_PROMPT,
    inspection_analysis_message,
    inspection_report_message,
)
from ..shaping import InspectionAnalysisResult

LOGGER = logging.getLogger(__name__)

NUMBERED_LINE = re.compile(r"\d+\.\s*([^\n]+)")
BULLET_LINE = re.compile(r"[-•]\s*([^\n]+)")

HIGH_RISK_LEVELS = ("extreme", "high")


@dataclass
class InspectionContext:
    project_id: str = "unknown"
    location: str | None = None
    inspector: str | None = None
    previous_inspections: list[dict[str, Any]] = field(default_factory=list)
    requires_report: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InspectionContext:
        return cls(
            project_id=str(data.get("project_id") or "unknown"),
            location=data.get("location"),
            inspector=data.get("inspector"),
            previous_inspections=[
                item for item in data.get("previous_inspections") or [] if isinstance(item, dict)
            ],
            requires_report=bool(data.get("requires_report", False)),
        )


@dataclass
class InspectionFindings:
    """Tool results gathered during one analysis."""
    compliance_results: list[dict[str, Any]] = field(default_factory=list)
    weather_assessment: dict[str, Any] | None = None
    defects: list[dict[str, Any]] = field(default_factory=list)
    risk_assessment: dict[str, Any] | None = None


def inspection_summary(inspection: InspectionData) -> dict[str, Any]:
    data = asdict(inspection)
    data["date"] = inspection.date.isoformat()
    return data


def extract_recommendations(text: str) -> list[str]:
    """Numbered lines that recommend something, then bullet lines that say 'should'."""
    numbered = [
        match.group(1).strip()
        for match in NUMBERED_LINE.finditer(text)
        if "recommend" in match.group(1).lower()
    ]
    bullets = [
        match.group(1).strip()
        for match in BULLET_LINE.finditer(text)
        if "should" in match.group(1).lower()
    ]
    return numbered + bullets


def collect_findings(tools_used: list[ToolExecutionResult]) -> InspectionFindings:
    findings = InspectionFindings()
    for execution in tools_used:
        if not execution.success:
            continue
        output = execution.output
        name = execution.tool_name
        if name == "verify_compliance":
            findings.compliance_results.append(output)
        elif name == "check_compaction_compliance":
            findings.compliance_results.append({**output, "compliant": output["passes"]})
        elif name == "check_weather_restrictions":
            findings.weather_assessment = output
        elif name == "make_weather_decision":
            findings.weather_assessment = {**output, "can_proceed": output["decision"] != "postpone"}
        elif name == "identify_defects":
            findings.defects.extend(output["defects"])
        elif name == "assess_risk":
            findings.risk_assessment = output
    return findings


class InspectionAnalyzer:
    def __init__(self, driver: ConversationDriver):
        self.driver = driver
        self.tool_execution_log: list[ToolExecutionResult] = []

    def analyze_inspection(
        self, inspection: InspectionData, context: InspectionContext | None = None
    ) -> InspectionAnalysisResult:
        """
        Analyze one inspection with the construction tool catalog.

        Args:
            inspection: The inspection, including any reported non-conformances
            context: Project, inspector, history and whether a written
                report is wanted

        Returns:
            InspectionAnalysisResult with the locally assessed status and,
            when requested, the model-written markdown report

        Raises:
            MaxIterationsExceeded: If the model never gives a final answer
            UpstreamError: If an API call fails
        """
        context = context or InspectionContext()
        self.tool_execution_log = []
        summary = inspection_summary(inspection)
        LOGGER.info("Analyzing %s inspection %s", inspection.type, inspection.id or "(no id)")

        result = self.driver.run(
            inspection_analysis_message(summary, asdict(context)),
            system_prompt=INSPECTOR_PROMPT,
            temperature=self.driver.config.compliance_temperature,
            prepare_input=self.input_preparer(inspection),
        )
        self.tool_execution_log = list(result.tools_used)

        findings = collect_findings(result.tools_used)
        status, recommendations = self.generate_final_assessment(findings)
        for recommendation in extract_recommendations(result.answer):
            if recommendation not in recommendations:
                recommendations.append(recommendation)

        analysis = InspectionAnalysisResult(
            inspection_id=inspection.id,
            project_id=context.project_id,
            overall_status=status,
            compliance_results=findings.compliance_results,
            weather_assessment=findings.weather_assessment,
            defects=findings.defects,
            recommendations=recommendations,
            risk_assessment=findings.risk_assessment,
            analysis=result.answer,
            tool_calls_made=result.iterations,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

        if context.requires_report:
            analysis.report_content = self.generate_report(
                summary, context.location or inspection.location, analysis
            )
            analysis.report_generated = True
        return analysis

    @staticmethod
    def generate_final_assessment(findings: InspectionFindings) -> tuple[str, list[str]]:
        """
        Overall status from the gathered tool results.

        Compliance failures, critical defects and blocking weather fail the
        inspection. High or extreme risk, or any other defect, is a warning.
        """
        has_failures = any(not result.get("compliant", True) for result in findings.compliance_results)
        has_critical_defects = any(defect.get("severity") == "critical" for defect in findings.defects)
        weather = findings.weather_assessment
        has_weather_issues = weather is not None and not weather.get("can_proceed", True)
        risk = findings.risk_assessment
        has_high_risk = risk is not None and risk.get("overall_risk") in HIGH_RISK_LEVELS

        status = "pass"
        recommendations: list[str] = []
        if has_failures or has_critical_defects or has_weather_issues:
            status = "fail"
            recommendations.append("Work must not proceed until critical issues are resolved")
        elif has_high_risk or findings.defects:
            status = "warning"
            recommendations.append("Proceed with caution and implement recommended controls")

        if has_failures:
            recommendations.append("Review and rectify all non-compliant items")
        if has_critical_defects:
            recommendations.append("Address critical defects immediately")
        if has_weather_issues:
            recommendations.append("Wait for suitable weather conditions before proceeding")
        return status, recommendations

    def generate_report(
        self, summary: dict[str, Any], location: str, analysis: InspectionAnalysisResult
    ) -> str:
        result = self.driver.run(
            inspection_report_message(summary, location, analysis.to_dict()),
            system_prompt=REPORT_WRITER_PROMPT,
            temperature=self.driver.config.report_temperature,
            use_tools=False,
        )
        return result.answer

    @staticmethod
    def input_preparer(inspection: InspectionData) -> InputPreparer:
        """
        Fill tool inputs from the inspection.

        Measured values from the inspection replace what the model sent
        to the compliance check; elsewhere the model's values win.
        """
        measurements = (
            {key: value for key, value in asdict(inspection.measurements).items() if value is not None}
            if inspection.measurements
            else None
        )
        rain = inspection.weather.recent_rainfall
        recent_rainfall = asdict(rain) if rain else None
        observations = [
            {
                "description": nc.get("description", ""),
                "location": inspection.location,
                "severity": str(nc.get("severity", "moderate")).lower(),
            }
            for nc in inspection.non_conformances
        ]

        defaults: dict[str, dict[str, Any]] = {
            "verify_compliance": {
                "inspection_type": inspection.type,
                "supervision_level": inspection.supervision_level,
                "site_class": inspection.site_class,
                "exposure_class": inspection.exposure_class,
                "under_traffic": inspection.under_traffic,
            },
            "check_compaction_compliance": {"supervision_level": inspection.supervision_level},
            "check_weather_restrictions": {
                "work_type": inspection.type,
                "material": inspection.material,
                "temperature": inspection.weather.temperature,
            },
            "make_weather_decision": {
                "work_type": inspection.type,
                "material": inspection.material,
                "current_conditions": inspection.weather.conditions,
                "temperature": inspection.weather.temperature,
                "recent_rainfall": recent_rainfall,
            },
            "identify_defects": {
                "inspection_area": inspection.location,
                "observations": observations,
            },
        }
        measured = {
            key: value
            for key, value in {
                "measurements": measurements,
                "material": inspection.material,
                "recent_rainfall": recent_rainfall,
            }.items()
            if value is not None
        }

        def prepare(name: str, tool_input: dict[str, Any]) -> dict[str, Any]:
            prepared = {
                key: value for key, value in defaults.get(name, {}).items() if value is not None
            }
            prepared.update(tool_input)
            if name == "verify_compliance":
                prepared.update(measured)
            return prepared

        return prepare
