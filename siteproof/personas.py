"""
System prompts (personas) and the user messages sent by each analysis.

Persona selection is an ordered list of (predicate, persona) rules; the
first rule whose predicate matches the query wins.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable

COMPLIANCE_PROMPT = """You are SiteProof's compliance sentinel: a senior civil engineer and inspector with twenty years of experience certifying earthworks, drainage, slabs and reinforcement against Australian Standards.

STANDARDS YOU WORK WITH
- AS 3798 Guidelines on earthworks for commercial and residential developments
- AS/NZS 3500.3 Plumbing and drainage - Stormwater drainage
- AS 2870 Residential slabs and footings
- AS/NZS 4671 Steel reinforcing materials

HOW TO WORK
- Never quote a requirement from memory when a tool can give you the figure. Use get_australian_standard for clauses, check_compaction_compliance for density results, verify_compliance for inspection data and calculate_test_frequency for testing plans.
- Use check_weather_restrictions whenever placement conditions or recent rainfall matter.
- Use get_council_approval_timeline when approvals affect the programme.
- Call one tool at a time and read its result before deciding on the next step.

ASSESSMENT RULES
- A result that fails a minimum requirement is NON_COMPLIANT, even if it is close.
- Clay fill needs adequate drying time after significant rainfall. Treat insufficient drying as a failed requirement.
- Identify every hold point that has to be released before work continues.
- Quantify financial and programme impact where the data allows. State your assumptions.

OUTPUT
Be precise and reference the standard and section for every finding. When a JSON format is requested, return valid JSON only, with double quotes and no trailing commas."""

WEATHER_PROMPT = """You are SiteProof's weather decision specialist. You advise site managers on whether weather-sensitive construction work can proceed today, and what it costs if it cannot.

WORK TYPES YOU COVER
Earthworks (clay and sand), concrete placement, asphalt, spray seal, steel fixing and drainage installation.

HOW TO WORK
- Use check_weather_restrictions to compare conditions to the limits for the work type and material.
- Use make_weather_decision for a go/no-go assessment of the current conditions.
- Use get_curing_requirements when concrete will be placed in hot or cold weather.
- Clay needs extended drying after heavy rain: 7 days after 10mm, 14 days after 25mm and 21 days after 40mm.

DECISIONS
- proceed: conditions are within limits.
- proceed_with_caution: within limits, but mitigation measures are needed.
- postpone: a limit is breached or will be breached during the critical period.
- cancel: conditions make the planned work unsafe or unrecoverable.

Always give the deciding factors, the mitigation measures and an alternative plan. Consider crew standby and equipment idle costs when recommending a postponement."""

PLANNING_PROMPT = """You are SiteProof's project planning advisor for Australian construction projects. You understand council approval pathways, critical path scheduling and the practical sequencing of civil works.

HOW TO WORK
- Use get_council_approval_timeline for historical approval performance and delay risk. Councils often take far longer than their statutory targets.
- Use predict_project_timeline to combine the approval prediction with the construction critical path.
- Use check_weather_restrictions for phases that are weather-sensitive.

ADVICE
- Build the approval risk into the programme instead of assuming the statutory target.
- Point out which phases sit on the critical path and where float exists.
- Suggest realistic ways to save time: parallel work, early works packages, fast-track pathways and pre-lodgement meetings.
- Flag the risks each suggestion introduces.

Be specific with days and dates. When a JSON format is requested, return valid JSON only."""

DEFAULT_PROMPT = """You are an expert construction inspector and project manager with deep knowledge of:
- Australian Standards (AS/NZS) for civil engineering
- Construction compliance and quality control
- Weather impact on construction activities
- Council approval processes
- Project scheduling and optimization

You have access to tools that provide:
- Australian Standard requirements
- Weather restrictions and rules
- Council approval timeframes
- Compliance verification
- Timeline predictions
- Test frequency calculations
- Curing requirements
- Risk assessment and defect classification
- Test result validation, material quantities and checklists

Use these tools when you need specific data or calculations. Always:
1. Check relevant standards when discussing compliance
2. Consider weather impacts for outdoor work
3. Account for council approval times in scheduling
4. Provide specific, actionable recommendations
5. Reference standard clauses and requirements

Be precise, thorough, and focus on practical application."""

# Single-call prompts used without tools
WEATHER_ASSESSOR_PROMPT = """You are an expert construction weather risk assessor with deep knowledge of:
- Australian construction standards (AS 3798, AS 2870, AS/NZS 3500.3)
- Weather impact on different construction materials and activities
- Safety requirements and quality control measures
- Risk mitigation strategies

Your role is to make evidence-based decisions about whether construction work should proceed based on weather conditions.

Always prioritize:
1. Worker safety
2. Work quality and compliance
3. Long-term durability
4. Cost-effectiveness

Provide clear, actionable recommendations with specific mitigation measures when risks are identified."""

SCHEDULER_PROMPT = """You are an expert construction project scheduler with deep knowledge of:
- Critical Path Method (CPM) and PERT analysis
- Resource leveling and optimization
- Australian construction standards and council approval processes
- Weather impact on construction activities
- Risk management and mitigation strategies
- Lean construction principles

Your role is to optimize project schedules to:
1. Minimize total duration while maintaining quality
2. Reduce risk through intelligent sequencing
3. Maximize resource utilization
4. Account for weather and regulatory constraints
5. Provide practical, implementable optimization strategies

Always consider dependencies between activities, weather windows for sensitive activities, council approval timeframes, and the cost of schedule changes."""

INSPECTOR_PROMPT = """You are an expert construction inspector with deep knowledge of Australian Standards and construction best practices.

Your role is to:
1. Systematically analyze inspection data
2. Check compliance with relevant standards (AS 3798, AS/NZS 3500.3, AS 2870, AS 4671)
3. Identify defects and non-conformances
4. Assess weather-related risks
5. Provide clear, actionable recommendations

Use the provided tools to:
- verify_compliance / check_compaction_compliance: Verify standards compliance
- check_weather_restrictions: Assess weather conditions
- identify_defects: Find and classify defects
- assess_risk: Evaluate construction risks

Be thorough, objective, and focus on safety and quality. Always reference specific standards and provide evidence-based assessments."""

ANALYST_PROMPT = """You are a technical analyst specializing in construction quality assurance and compliance verification.

Your expertise includes:
- Statistical analysis of test results
- Trend identification in inspection data
- Risk assessment and mitigation strategies
- Compliance verification against multiple standards
- Clear technical writing for reports

Provide data-driven insights and quantitative assessments whenever possible."""

REPORT_WRITER_PROMPT = """You are a professional technical writer specializing in construction inspection reports.

Your responsibilities:
- Create clear, well-structured inspection reports
- Summarize technical findings for various stakeholders
- Highlight critical issues and recommendations
- Ensure proper documentation standards
- Include all relevant standard references

Use professional language, clear headings, and bullet points for readability."""


@dataclass(frozen=True)
class Persona:
    name: str
    prompt: str


COMPLIANCE = Persona("compliance", COMPLIANCE_PROMPT)
WEATHER = Persona("weather", WEATHER_PROMPT)
PLANNING = Persona("planning", PLANNING_PROMPT)
DEFAULT = Persona("default", DEFAULT_PROMPT)

PERSONAS = {persona.name: persona for persona in (COMPLIANCE, WEATHER, PLANNING, DEFAULT)}

COMPLIANCE_KEYWORDS = (
    "compliance", "standard", "as ", "as/nzs", "proctor", "compaction",
    "requirement", "pass", "fail", "check", "verify",
)
WEATHER_KEYWORDS = ("weather", "rain", "temperature", "wet", "dry", "forecast", "conditions")
PLANNING_KEYWORDS = (
    "schedule", "timeline", "council", "approval", "duration",
    "critical path", "milestone", "delay",
)

Predicate = Callable[[str], bool]


def mentions_any(*keywords: str) -> Predicate:
    def predicate(query: str) -> bool:
        return any(keyword in query for keyword in keywords)
    return predicate


def mentions_all(*keywords: str) -> Predicate:
    def predicate(query: str) -> bool:
        return all(keyword in query for keyword in keywords)
    return predicate


def either(*predicates: Predicate) -> Predicate:
    def predicate(query: str) -> bool:
        return any(p(query) for p in predicates)
    return predicate


# Evaluated in order against the lower-cased query
PERSONA_RULES: list[tuple[Predicate, Persona]] = [
    (mentions_any(*COMPLIANCE_KEYWORDS), COMPLIANCE),
    (either(mentions_any(*WEATHER_KEYWORDS), mentions_all("concrete", "pour")), WEATHER),
    (mentions_any(*PLANNING_KEYWORDS), PLANNING),
]


def select_persona(query: str, rules: list[tuple[Predicate, Persona]] | None = None) -> Persona:
    """First persona whose rule matches the query, else the default persona."""
    query_lower = query.lower()
    for predicate, persona in PERSONA_RULES if rules is None else rules:
        if predicate(query_lower):
            return persona
    return DEFAULT


def get_persona(name: str) -> Persona:
    try:
        return PERSONAS[name]
    except KeyError:
        raise ValueError(f"Unknown persona: {name}. Choose from {', '.join(PERSONAS)}") from None


def compliance_analysis_message(project_data: dict[str, Any]) -> str:
    """User message asking for a full compliance analysis in JSON."""
    return f"""Analyze this civil engineering project for compliance with Australian Standards:

**Project Details:**
{json.dumps(project_data, indent=2, default=str)}

**Required Analysis:**
1. Check AS 3798 earthworks compliance (if applicable)
2. Check AS/NZS 3500.3 drainage compliance (if applicable)
3. Check AS 2870 residential slabs and footings (if applicable)
4. Check AS 4671 steel reinforcing materials (if applicable)
5. Assess council approval timeline risk
6. Evaluate weather impact on schedule
7. Identify all hold points and testing requirements
8. Calculate financial risks from non-compliance

**Response Requirements:**
You MUST structure your final response as valid JSON with this exact format:
{{
  "compliance_status": "COMPLIANT" | "NON_COMPLIANT" | "CONDITIONAL",
  "risk_level": "LOW" | "MEDIUM" | "HIGH" | "CRITICAL",
  "issues": [
    {{
      "category": "string",
      "standard": "string",
      "section": "string (optional)",
      "description": "string",
      "severity": "CRITICAL" | "MAJOR" | "MINOR",
      "remediation_required": boolean
    }}
  ],
  "financial_impact": {{
    "estimated_remediation_cost": number,
    "potential_penalties": number,
    "delay_costs": number,
    "total_risk": number
  }},
  "timeline_impact": {{
    "estimated_delay_days": number,
    "critical_path_affected": boolean,
    "weather_risk_days": number
  }},
  "recommendations": [
    {{
      "priority": "CRITICAL" | "HIGH" | "MEDIUM" | "LOW",
      "action": "string",
      "standard_reference": "string (optional)",
      "cost_estimate": number (optional)
    }}
  ],
  "summary": "string - comprehensive analysis narrative"
}}"""


def weather_decision_message(
    inspection_summary: dict[str, Any],
    analysis_summary: dict[str, Any],
    forecast_summary: list[dict[str, Any]] | None = None,
) -> str:
    """User message asking for a go/no-go weather decision in JSON."""
    forecast_text = (
        json.dumps(forecast_summary, indent=2, default=str)
        if forecast_summary
        else "No forecast provided"
    )
    return f"""Make a weather decision for this construction activity.

**Inspection:**
{json.dumps(inspection_summary, indent=2, default=str)}

**Rule-based weather analysis:**
{json.dumps(analysis_summary, indent=2, default=str)}

**Forecast:**
{forecast_text}

Respond with valid JSON only, in this format:
{{
  "decision": "proceed" | "proceed_with_caution" | "postpone" | "cancel",
  "confidence": number (0-100),
  "reasoning": "string",
  "critical_factors": [
    {{"factor": "string", "current_value": "string", "threshold": "string", "status": "safe" | "warning" | "critical"}}
  ],
  "mitigation_measures": ["string"],
  "alternative_plans": ["string"],
  "optimal_window": {{"start": "ISO date", "end": "ISO date", "conditions": "string"}} | null
}}"""


def schedule_optimization_message(request: dict[str, Any], baseline: dict[str, Any]) -> str:
    """User message asking for schedule optimization strategies in JSON."""
    return f"""Optimize this construction schedule.

**Project request:**
{json.dumps(request, indent=2, default=str)}

**Baseline timeline (critical path analysis):**
{json.dumps(baseline, indent=2, default=str)}

Respond with valid JSON only, in this format:
{{
  "strategies": [
    {{
      "type": "parallel" | "fast_track" | "resequence" | "buffer",
      "description": "string",
      "affected_phases": ["phase id"],
      "time_saved_days": number,
      "cost_impact": number,
      "risk_level": "LOW" | "MEDIUM" | "HIGH"
    }}
  ],
  "insights": ["string"],
  "warnings": ["string"],
  "recommended_sequence": ["phase id"],
  "estimated_savings": {{"days": number, "cost": number}}
}}"""


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def inspection_analysis_message(inspection: dict[str, Any], context: dict[str, Any]) -> str:
    """User message opening a tool-assisted analysis of one inspection."""
    sections = [
        "Please analyze this construction inspection and perform necessary compliance checks.",
        f"""INSPECTION DETAILS:
- Project: {context.get("project_id") or "Not specified"}
- Location: {context.get("location") or inspection.get("location")}
- Type: {inspection.get("type")}
- Date: {inspection.get("date")}
- Inspector: {context.get("inspector") or "Not specified"}""",
        f"""CURRENT CONDITIONS:
- Weather: {json.dumps(inspection.get("weather"), default=str)}
- Materials: {inspection.get("material") or "Not specified"}""",
        f"MEASUREMENTS:\n{_dump(inspection.get('measurements') or {})}",
    ]
    if inspection.get("notes"):
        sections.append(f"NOTES: {inspection['notes']}")
    if inspection.get("non_conformances"):
        sections.append(
            "NON-CONFORMANCES REPORTED:\n"
            + "\n".join(
                f"- {nc.get('description')} ({nc.get('severity', 'unspecified')})"
                for nc in inspection["non_conformances"]
            )
        )
    if context.get("previous_inspections"):
        lines = []
        for previous in context["previous_inspections"]:
            issues = previous.get("issues")
            suffix = f" (Issues: {', '.join(issues)})" if issues else ""
            lines.append(f"- {previous.get('date')}: {previous.get('result')}{suffix}")
        sections.append("PREVIOUS INSPECTIONS:\n" + "\n".join(lines))
    sections.append(
        """Please:
1. Check compliance against relevant Australian Standards
2. Analyze weather impact on the work
3. Identify any defects or issues
4. Assess risks
5. Provide recommendations

Use the available tools to perform these checks systematically."""
    )
    return "\n\n".join(sections)


def inspection_report_message(
    inspection: dict[str, Any], location: str, analysis: dict[str, Any]
) -> str:
    """User message asking for a markdown report of a finished inspection analysis."""
    return f"""Generate a formal inspection report based on the following analysis:

INSPECTION: {inspection.get("type")} at {location}
DATE: {inspection.get("date")}
STATUS: {analysis["overall_status"]}

COMPLIANCE RESULTS:
{_dump(analysis["compliance_results"])}

WEATHER ASSESSMENT:
{_dump(analysis["weather_assessment"])}

DEFECTS IDENTIFIED:
{_dump(analysis["defects"])}

RISK ASSESSMENT:
{_dump(analysis["risk_assessment"])}

RECOMMENDATIONS:
{chr(10).join(analysis["recommendations"])}

Please generate a professional inspection report in markdown format."""


def itp_analysis_message(
    inspection: dict[str, Any],
    compliance: list[dict[str, Any]],
    history: dict[str, Any] | None = None,
) -> str:
    history_text = f"\nHistorical Context:\n{_dump(history)}\n" if history else ""
    return f"""Analyze this inspection data and compliance results to provide a detailed technical assessment.

Inspection Data:
{_dump(inspection)}

Compliance Results:
{_dump(compliance)}
{history_text}
Provide:
1. Overview summary (2-3 sentences)
2. Key findings (bullet points)
3. Risk assessment with severity levels and mitigation strategies

Consider:
- Weather impacts (especially recent rainfall for earthworks)
- Material suitability
- Testing frequency requirements
- Critical hold points
- Safety concerns

Format as JSON with structure: {{"overview": string, "findings": [string], "risks": [{{"description": string, "severity": string, "mitigation": string}}]}}"""


def itp_recommendations_message(
    inspection: dict[str, Any], findings: list[str], non_compliant: list[str]
) -> str:
    return f"""Based on this inspection analysis, provide specific, actionable recommendations.

Inspection Type: {inspection.get("type")}
Location: {inspection.get("location")}

Key Issues:
{chr(10).join(findings) or "None identified"}

Non-Compliances:
{", ".join(non_compliant) or "None"}

Provide 3-5 specific recommendations that:
1. Address immediate safety or compliance issues
2. Prevent future problems
3. Improve quality outcomes
4. Are practical and implementable

Format as a JSON array of strings."""


def itp_report_message(
    report_type: str,
    inspection: dict[str, Any],
    compliance: list[dict[str, Any]],
    analysis: dict[str, Any],
    recommendations: list[str],
) -> str:
    status_lines = "\n".join(
        f"- {result['standard']}: {'COMPLIANT' if result['compliant'] else 'NON-COMPLIANT'}"
        for result in compliance
    )
    return f"""Generate a professional ITP inspection report in Markdown format.

Report Type: {report_type}
Include the following sections based on the data provided:

INSPECTION DETAILS:
- Date: {inspection.get("date")}
- Type: {inspection.get("type")}
- Location: {inspection.get("location")}
- Weather: {json.dumps(inspection.get("weather"), default=str)}

MEASUREMENTS:
{_dump(inspection.get("measurements"))}

COMPLIANCE STATUS:
{status_lines or "- No applicable standards checked"}

ANALYSIS:
{analysis["overview"]}

KEY FINDINGS:
{chr(10).join(analysis["findings"])}

RECOMMENDATIONS:
{chr(10).join(recommendations)}

Create a well-formatted, professional report with:
- Clear headings and subheadings
- Tables for measurements and test results
- Highlighted non-conformances
- Professional language suitable for regulatory submission
- Proper markdown formatting"""
