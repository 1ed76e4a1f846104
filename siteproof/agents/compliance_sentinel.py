"""
Compliance sentinel: full project compliance analysis through the tool loop.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..conversation import ConversationDriver
from ..models import ToolExecutionResult
from ..personas import COMPLIANCE_PROMPT, compliance_analysis_message
from ..shaping import COMPLIANCE_DEFAULTS, ComplianceAnalysisResult, parse_or_default
from ..tools.compaction import check_compaction_compliance

LOGGER = logging.getLogger(__name__)


@dataclass
class QuickCheckResult:
    passed: bool
    failures: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


class ComplianceSentinel:
    def __init__(self, organization_id: str, driver: ConversationDriver):
        self.organization_id = organization_id
        self.driver = driver
        self.tool_execution_log: list[ToolExecutionResult] = []

    def analyze_project(self, project_data: dict[str, Any]) -> ComplianceAnalysisResult:
        """
        Run a full compliance analysis of a project.

        The model works through the tool catalog with the compliance
        persona; its final JSON answer is shaped onto the compliance
        defaults, so a free-text answer still yields a complete result.

        Args:
            project_data: Project description (any JSON-serialisable dict)

        Returns:
            ComplianceAnalysisResult stamped with organization, project and time

        Raises:
            MaxIterationsExceeded: If the model never gives a final answer
            UpstreamError: If the API call fails
        """
        self.tool_execution_log = []
        project_id = str(project_data.get("id") or project_data.get("project_id") or "unknown")
        LOGGER.info("Analyzing project %s for %s", project_id, self.organization_id)

        result = self.driver.run(
            compliance_analysis_message(project_data),
            system_prompt=COMPLIANCE_PROMPT,
            temperature=self.driver.config.compliance_temperature,
        )
        self.tool_execution_log = list(result.tools_used)

        shaped, parsed = parse_or_default(result.answer, COMPLIANCE_DEFAULTS, text_field="summary")
        if not parsed:
            LOGGER.warning("Compliance answer for %s was not JSON; returning text analysis", project_id)

        return ComplianceAnalysisResult(
            organization_id=self.organization_id,
            project_id=project_id,
            compliance_status=shaped["compliance_status"],
            risk_level=shaped["risk_level"],
            issues=[issue for issue in shaped["issues"] if isinstance(issue, dict)],
            financial_impact=shaped["financial_impact"],
            timeline_impact=shaped["timeline_impact"],
            recommendations=[r for r in shaped["recommendations"] if isinstance(r, dict)],
            analysis=shaped["summary"] or result.answer,
            tool_calls_made=result.iterations,
            timestamp=datetime.now(timezone.utc).isoformat(),
            parsed=parsed,
        )

    def quick_compliance_check(self, test_results: list[dict[str, Any]]) -> QuickCheckResult:
        """
        Check field test results locally, without calling the model.

        Only compaction results reported in % are evaluated; the value is
        the achieved percentage of maximum dry density.
        """
        failures: list[str] = []
        recommendations: list[str] = []

        for test in test_results:
            if test.get("test_type") != "compaction" or test.get("unit") != "%":
                LOGGER.debug("Skipping %s test in quick check", test.get("test_type"))
                continue

            value = float(test["value"])
            requirement = float(test["requirement"])
            outcome = check_compaction_compliance(
                {
                    "dry_density": value,
                    "max_dry_density": 100,
                    "required_percentage": requirement,
                    "supervision_level": "level_1",
                }
            )
            if not outcome["passes"]:
                failures.append(f"Compaction failed: {value:g}% < {requirement:g}% required")
                recommendations.extend(outcome["recommendations"])

        return QuickCheckResult(
            passed=not failures, failures=failures, recommendations=recommendations
        )
