"""Word report generation for compliance analyses."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, RGBColor

from .models import ToolExecutionResult
from .shaping import ComplianceAnalysisResult


SEVERITY_COLORS = {
    "CRITICAL": RGBColor(192, 0, 0),       # Dark red
    "MAJOR": RGBColor(255, 102, 0),        # Orange
    "MINOR": RGBColor(0, 112, 192),        # Blue
}

SEVERITY_ORDER = ["CRITICAL", "MAJOR", "MINOR"]

PRIORITY_ORDER = ["CRITICAL", "HIGH", "MEDIUM", "LOW"]

# Summary cell fill by status / risk level
STATUS_SHADING = {
    "COMPLIANT": "C6EFCE",
    "CONDITIONAL": "FFEB9C",
    "NON_COMPLIANT": "FFC7CE",
    "LOW": "C6EFCE",
    "MEDIUM": "FFEB9C",
    "HIGH": "F8CBAD",
    "CRITICAL": "FFC7CE",
}


def set_cell_shading(cell, color_hex: str):
    """Set background shading for a table cell."""
    shading = OxmlElement('w:shd')
    shading.set(qn('w:fill'), color_hex)
    cell._tc.get_or_add_tcPr().append(shading)


def add_styled_paragraph(doc: Document, text: str, bold: bool = False,
                         color: RGBColor = None, size: int = None, space_after: int = None):
    """Add a paragraph with optional styling."""
    para = doc.add_paragraph()
    run = para.add_run(text)
    if bold:
        run.bold = True
    if color:
        run.font.color.rgb = color
    if size:
        run.font.size = Pt(size)
    if space_after is not None:
        para.paragraph_format.space_after = Pt(space_after)
    return para


def add_labelled(doc: Document, label: str, value: Any):
    para = doc.add_paragraph()
    para.add_run(f"{label}: ").bold = True
    para.add_run(str(value))
    para.paragraph_format.space_after = Pt(3)
    return para


def create_summary_table(doc: Document, result: ComplianceAnalysisResult):
    """Status, risk and issue counts in one row."""
    grouped = result.issues_by_severity
    headers = ["STATUS", "RISK", *SEVERITY_ORDER, "TOTAL"]
    values = [
        result.compliance_status,
        result.risk_level,
        *(str(len(grouped.get(severity, []))) for severity in SEVERITY_ORDER),
        str(len(result.issues)),
    ]

    table = doc.add_table(rows=1, cols=len(headers))
    table.style = 'Table Grid'
    table.alignment = WD_TABLE_ALIGNMENT.CENTER

    for cell, header, value in zip(table.rows[0].cells, headers, values):
        cell.text = f"{header}\n{value}"
        cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER
        for run in cell.paragraphs[0].runs:
            run.font.bold = True
            run.font.size = Pt(10)
        if header in ("STATUS", "RISK") and value in STATUS_SHADING:
            set_cell_shading(cell, STATUS_SHADING[value])


def create_issue_entry(doc: Document, issue: dict[str, Any], index: int, severity: str):
    para = doc.add_paragraph()
    run = para.add_run(f"{index}. [{severity}] ")
    run.bold = True
    run.font.color.rgb = SEVERITY_COLORS.get(severity, RGBColor(0, 0, 0))
    para.add_run(str(issue.get("category", "General"))).bold = True

    standard = issue.get("standard")
    if standard:
        section = issue.get("section")
        add_labelled(doc, "Standard", f"{standard} {section}" if section else standard)
    add_labelled(doc, "Issue", issue.get("description", ""))
    if issue.get("remediation_required"):
        para = add_labelled(doc, "Remediation", "Required")
        para.runs[-1].font.color.rgb = RGBColor(192, 0, 0)

    doc.add_paragraph()


def create_issues_section(doc: Document, result: ComplianceAnalysisResult):
    doc.add_heading("Issues", level=1)
    if not result.issues:
        add_styled_paragraph(doc, "No issues found.", size=12, color=RGBColor(0, 128, 0))
        return

    grouped = result.issues_by_severity
    for severity in [*SEVERITY_ORDER, *sorted(set(grouped) - set(SEVERITY_ORDER))]:
        issues = grouped.get(severity, [])
        if not issues:
            continue
        heading = doc.add_heading(f"{severity} ({len(issues)})", level=2)
        for run in heading.runs:
            run.font.color.rgb = SEVERITY_COLORS.get(severity, RGBColor(0, 0, 0))
        for i, issue in enumerate(issues, 1):
            create_issue_entry(doc, issue, i, severity)


def create_impact_section(doc: Document, result: ComplianceAnalysisResult):
    doc.add_heading("Impact", level=1)

    doc.add_heading("Financial", level=2)
    table = doc.add_table(rows=0, cols=2)
    table.style = 'Table Grid'
    for key, value in result.financial_impact.items():
        row = table.add_row().cells
        row[0].text = key.replace("_", " ").capitalize()
        row[1].text = f"${value:,.0f}" if isinstance(value, (int, float)) else str(value)
    doc.add_paragraph()

    doc.add_heading("Timeline", level=2)
    timeline = result.timeline_impact
    add_labelled(doc, "Estimated delay", f"{timeline.get('estimated_delay_days', 0)} days")
    add_labelled(doc, "Critical path affected", "Yes" if timeline.get("critical_path_affected") else "No")
    add_labelled(doc, "Weather risk", f"{timeline.get('weather_risk_days', 0)} days")


def create_recommendations_section(doc: Document, result: ComplianceAnalysisResult):
    if not result.recommendations:
        return

    doc.add_heading("Recommendations", level=1)

    def rank(rec: dict[str, Any]) -> int:
        priority = str(rec.get("priority", "LOW")).upper()
        return PRIORITY_ORDER.index(priority) if priority in PRIORITY_ORDER else len(PRIORITY_ORDER)

    for rec in sorted(result.recommendations, key=rank):
        para = doc.add_paragraph(style='List Bullet')
        para.add_run(f"[{str(rec.get('priority', 'LOW')).upper()}] ").bold = True
        para.add_run(str(rec.get("action", "")))
        if rec.get("standard_reference"):
            para.add_run(f" ({rec['standard_reference']})").italic = True
        if isinstance(rec.get("cost_estimate"), (int, float)):
            para.add_run(f" - est. ${rec['cost_estimate']:,.0f}")


def create_tools_section(doc: Document, tool_log: list[ToolExecutionResult]):
    doc.add_heading("Tools Executed", level=1)
    table = doc.add_table(rows=1, cols=3)
    table.style = 'Table Grid'
    for cell, header in zip(table.rows[0].cells, ["Tool", "Result", "Time (ms)"]):
        cell.text = header
        cell.paragraphs[0].runs[0].font.bold = True

    for execution in tool_log:
        row = table.add_row().cells
        row[0].text = execution.tool_name
        row[1].text = "OK" if execution.success else f"Failed: {execution.error or 'error'}"
        row[2].text = f"{execution.execution_time:.1f}"
        if not execution.success:
            set_cell_shading(row[1], STATUS_SHADING["NON_COMPLIANT"])


def generate_compliance_report(
    result: ComplianceAnalysisResult,
    output_path: Path,
    tool_log: list[ToolExecutionResult] | None = None,
) -> Path:
    """
    Generate a Word document report from a compliance analysis.

    Args:
        result: The shaped compliance analysis
        output_path: Directory to write report.docx into, or a .docx path
        tool_log: Tool executions from the analysis run

    Returns:
        Path to the generated report
    """
    output_path = Path(output_path)
    report_path = output_path if output_path.suffix == ".docx" else output_path / "report.docx"
    report_path.parent.mkdir(parents=True, exist_ok=True)

    doc = Document()

    style = doc.styles['Normal']
    style.font.name = 'Arial'
    style.font.size = Pt(11)

    title = doc.add_heading("SiteProof Compliance Report", level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    para = doc.add_paragraph()
    para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    para.add_run(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}\n")
    para.add_run(f"Project: {result.project_id}\n")
    para.add_run(f"Organization: {result.organization_id}\n")
    para.add_run(f"Analysis time: {result.timestamp}")

    doc.add_heading("Summary", level=1)
    create_summary_table(doc, result)
    doc.add_paragraph()
    if not result.parsed:
        add_styled_paragraph(
            doc,
            "The analysis was not returned in structured form; status and risk are defaults.",
            size=10,
            color=SEVERITY_COLORS["MAJOR"],
        )
    if result.analysis:
        doc.add_paragraph(result.analysis)

    create_issues_section(doc, result)
    create_impact_section(doc, result)
    create_recommendations_section(doc, result)

    if tool_log:
        create_tools_section(doc, tool_log)

    doc.save(report_path)
    return report_path
