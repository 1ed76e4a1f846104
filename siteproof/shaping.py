"""
Response shaping: turn a model's free-text answer into a well-formed result.

Model output is unreliable, so every expected field has a default and
parsed values only replace defaults when they have a compatible type.
"""
from __future__ import annotations

import copy
import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any

LOGGER = logging.getLogger(__name__)


COMPLIANCE_DEFAULTS: dict[str, Any] = {
    "compliance_status": "CONDITIONAL",
    "risk_level": "MEDIUM",
    "issues": [],
    "financial_impact": {
        "estimated_remediation_cost": 0,
        "potential_penalties": 0,
        "delay_costs": 0,
        "total_risk": 0,
    },
    "timeline_impact": {
        "estimated_delay_days": 0,
        "critical_path_affected": False,
        "weather_risk_days": 0,
    },
    "recommendations": [],
    "summary": "",
}

WEATHER_DECISION_DEFAULTS: dict[str, Any] = {
    "decision": "proceed_with_caution",
    "confidence": 50,
    "reasoning": "Analysis completed",
    "critical_factors": [],
    "mitigation_measures": [],
    "alternative_plans": [],
    "optimal_window": None,
}

SCHEDULE_DEFAULTS: dict[str, Any] = {
    "strategies": [],
    "insights": ["Unable to generate AI insights"],
    "warnings": [],
    "recommended_sequence": [],
    "estimated_savings": {"days": 0, "cost": 0},
}

ITP_ANALYSIS_DEFAULTS: dict[str, Any] = {
    "overview": "Analysis could not be completed",
    "findings": [],
    "risks": [],
}


def _span(text: str, open_char: str, close_char: str) -> str | None:
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start:end + 1]


def extract_json(text: str | None) -> Any | None:
    """
    Parse the first greedy {...} span in text, else the first greedy [...] span.

    Returns:
        The parsed value, or None when no span exists or none parses
    """
    if not text:
        return None
    for open_char, close_char in (("{", "}"), ("[", "]")):
        candidate = _span(text, open_char, close_char)
        if candidate is None:
            continue
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            LOGGER.debug("Embedded %s...%s span is not valid JSON: %s", open_char, close_char, e)
    return None


def _compatible(default: Any, value: Any) -> bool:
    if value is None:
        return False
    if default is None:
        return True
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, (int, float)):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(default, str):
        return isinstance(value, str)
    if isinstance(default, list):
        return isinstance(value, list)
    if isinstance(default, dict):
        return isinstance(value, dict)
    return isinstance(value, type(default))


def merge_defaults(defaults: dict[str, Any], parsed: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge parsed onto a copy of defaults; unknown keys are ignored."""
    merged = copy.deepcopy(defaults)
    for key, default in defaults.items():
        if key not in parsed or not _compatible(default, parsed[key]):
            continue
        value = parsed[key]
        if isinstance(default, dict) and default:
            merged[key] = merge_defaults(default, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def parse_or_default(
    text: str | None,
    defaults: dict[str, Any],
    *,
    text_field: str | None = None,
) -> tuple[dict[str, Any], bool]:
    """
    Shape a model answer onto defaults.

    Args:
        text: Raw model answer
        defaults: Expected shape with a default for every field
        text_field: Field that receives the raw text unless the parsed
            JSON supplies it

    Returns:
        (shaped result, whether a JSON object was parsed)
    """
    base = copy.deepcopy(defaults)
    if text_field is not None:
        base[text_field] = text or ""

    parsed = extract_json(text)
    if not isinstance(parsed, dict):
        if text:
            LOGGER.info("No JSON object in model answer; using defaults")
        return base, False
    return merge_defaults(base, parsed), True


@dataclass
class ComplianceAnalysisResult:
    organization_id: str
    project_id: str
    compliance_status: str
    risk_level: str
    issues: list[dict[str, Any]]
    financial_impact: dict[str, Any]
    timeline_impact: dict[str, Any]
    recommendations: list[dict[str, Any]]
    analysis: str
    tool_calls_made: int
    timestamp: str
    parsed: bool = True

    @property
    def issues_by_severity(self) -> dict[str, list[dict[str, Any]]]:
        grouped: dict[str, list[dict[str, Any]]] = {"CRITICAL": [], "MAJOR": [], "MINOR": []}
        for issue in self.issues:
            severity = str(issue.get("severity", "MINOR")).upper() if isinstance(issue, dict) else "MINOR"
            grouped.setdefault(severity, []).append(issue)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComplianceAnalysisResult:
        shaped = merge_defaults(COMPLIANCE_DEFAULTS, data)
        return cls(
            organization_id=str(data.get("organization_id", "default")),
            project_id=str(data.get("project_id", "unknown")),
            compliance_status=shaped["compliance_status"],
            risk_level=shaped["risk_level"],
            issues=shaped["issues"],
            financial_impact=shaped["financial_impact"],
            timeline_impact=shaped["timeline_impact"],
            recommendations=shaped["recommendations"],
            analysis=str(data.get("analysis") or shaped["summary"]),
            tool_calls_made=int(data.get("tool_calls_made", 0) or 0),
            timestamp=str(data.get("timestamp", "")),
            parsed=bool(data.get("parsed", True)),
        )


@dataclass
class WeatherDecision:
    decision: str  # proceed | proceed_with_caution | postpone | cancel
    confidence: float
    reasoning: str
    critical_factors: list[Any] = field(default_factory=list)
    mitigation_measures: list[str] = field(default_factory=list)
    alternative_plans: list[str] = field(default_factory=list)
    optimal_window: dict[str, Any] | None = None
    source: str = "ai"  # ai | rules

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class OptimizedSchedule:
    original_duration: int
    optimized_duration: int
    time_saved: int
    strategies: list[dict[str, Any]]
    optimized_phases: list[dict[str, Any]]
    critical_path: list[str]
    improvements: list[str]
    insights: list[str]
    warnings: list[str]
    estimated_savings: dict[str, Any]
    source: str = "ai"  # ai | rules

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class InspectionAnalysisResult:
    inspection_id: str | None
    project_id: str
    overall_status: str  # pass | fail | warning
    compliance_results: list[dict[str, Any]]
    weather_assessment: dict[str, Any] | None
    defects: list[dict[str, Any]]
    recommendations: list[str]
    risk_assessment: dict[str, Any] | None
    analysis: str
    tool_calls_made: int
    timestamp: str
    report_generated: bool = False
    report_content: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ITPReport:
    id: str
    generated_at: str
    inspection_id: str | None
    report_type: str
    compliance: list[dict[str, Any]]
    summary: str
    detailed_analysis: dict[str, Any]
    recommendations: list[str]
    next_actions: list[str]
    report_markdown: str
    parsed: bool = True

    @property
    def compliant(self) -> bool:
        return all(result["compliant"] for result in self.compliance)

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "compliant": self.compliant}
