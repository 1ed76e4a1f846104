import json

import pytest
from click.testing import CliRunner
from rich.console import Console

from conftest import FakeModelClient, text_response, tool_response
from siteproof import cli
from siteproof.errors import UpstreamError
from siteproof.service import SiteProofAI


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    monkeypatch.setattr(cli, "console", Console(width=300))
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_service(monkeypatch):
    """Route commands to a service backed by scripted model responses."""
    def install(client):
        monkeypatch.setattr(
            cli, "get_service", lambda ctx: SiteProofAI(ctx.obj, client=client, token_counter=None)
        )
        return client
    return install


class FailingClient:
    def create_message(self, **kwargs):
        raise UpstreamError("Failed after 3 attempts: overloaded", attempts=3)


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_tools_lists_catalog(runner):
    result = runner.invoke(cli.main, ["tools"])
    assert result.exit_code == 0
    assert "check_compaction_compliance" in result.output
    assert "get_council_approval_timeline" in result.output


def test_run_tool(runner):
    result = runner.invoke(
        cli.main,
        ["run-tool", "check_compaction_compliance", "-i", '{"dry_density": 19.8, "max_dry_density": 20.2}'],
    )
    assert result.exit_code == 0
    output = json.loads(result.output)
    assert output["passes"] is True
    assert output["achieved_percentage"] == 98.0


@pytest.mark.parametrize(
    "args, message",
    [
        (["run-tool", "launch_rockets"], "Unknown tool: launch_rockets"),
        (["run-tool", "check_compaction_compliance", "-i", "{bad"], "Could not process input"),
        (["run-tool", "check_compaction_compliance", "-i", "[1]"], "must be a JSON object"),
        (["run-tool", "check_compaction_compliance"], "missing required field(s)"),
    ],
)
def test_run_tool_errors_exit_1(runner, args, message):
    result = runner.invoke(cli.main, args)
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert message in result.output


def test_ask(runner, fake_service):
    client = fake_service(FakeModelClient([text_response("Site is compliant.")]))
    result = runner.invoke(cli.main, ["ask", "Is lot 4 ok?", "-c", "site=North", "--persona", "compliance"])

    assert result.exit_code == 0, result.output
    assert "Site is compliant." in result.output
    assert "Confidence: 50%" in result.output
    assert "site: North" in client.calls[0]["messages"][0]["content"]


def test_ask_bad_context_is_a_usage_error(runner, fake_service):
    fake_service(FakeModelClient([]))
    result = runner.invoke(cli.main, ["ask", "q", "-c", "novalue"])
    assert result.exit_code == 2


def test_ask_upstream_failure_exits_1(runner, fake_service):
    fake_service(FailingClient())
    result = runner.invoke(cli.main, ["ask", "hello"])
    assert result.exit_code == 1
    assert "Failed after 3 attempts" in result.output


def test_compliance_writes_analysis_and_report(runner, fake_service, tmp_path):
    answer = json.dumps({"compliance_status": "COMPLIANT", "risk_level": "LOW", "summary": "All clear."})
    fake_service(FakeModelClient([text_response(answer)]))
    project = write_json(tmp_path / "project.json", {"id": "P-1", "type": "earthworks"})

    result = runner.invoke(
        cli.main, ["compliance", project, "-o", str(tmp_path / "out"), "--organization", "acme"]
    )

    assert result.exit_code == 0, result.output
    [run_dir] = (tmp_path / "out").iterdir()
    assert run_dir.name.startswith("compliance_")
    analysis = json.loads((run_dir / "analysis.json").read_text(encoding="utf-8"))
    assert analysis["compliance_status"] == "COMPLIANT"
    assert analysis["organization_id"] == "acme"
    assert analysis["tools"] == []
    assert (run_dir / "report.docx").exists()
    assert "COMPLIANT" in result.output


def test_compliance_missing_file(runner):
    result = runner.invoke(cli.main, ["compliance", "does-not-exist.json"])
    assert result.exit_code == 2


def test_weather_falls_back_to_rules(runner, fake_service, tmp_path):
    fake_service(FakeModelClient([text_response("Hard to say.")]))
    inspection = write_json(
        tmp_path / "inspection.json",
        {
            "type": "earthworks",
            "material": "clay",
            "weather": {"conditions": "sunny", "recent_rainfall": {"amount": 45, "days_ago": 5}},
            "forecast": [{"date": "2026-01-05", "temperature": {"min": 12, "max": 22}, "rainfall": 0}],
        },
    )

    result = runner.invoke(cli.main, ["weather", inspection])

    assert result.exit_code == 0, result.output
    assert "POSTPONE" in result.output
    assert "(rules)" in result.output
    assert "16 more days" in result.output


def test_schedule_rules_only(runner, fake_service, tmp_path):
    client = fake_service(FakeModelClient([]))
    request = write_json(
        tmp_path / "schedule.json",
        {
            "phases": [
                {"id": "A", "name": "Retaining wall", "duration": 10},
                {"id": "B", "name": "Fencing", "duration": 6},
            ],
            "constraints": {"must_start_after": "2026-01-05"},
        },
    )

    result = runner.invoke(cli.main, ["schedule", request, "--rules-only"])

    assert result.exit_code == 0, result.output
    assert client.calls == []
    assert "10 → 10 days" in result.output
    assert "Retaining wall could run in parallel with Fencing" in result.output


def test_schedule_cycle_exits_1(runner, fake_service, tmp_path):
    fake_service(FakeModelClient([]))
    request = write_json(
        tmp_path / "schedule.json",
        {
            "phases": [
                {"id": "A", "name": "A", "duration": 1, "dependencies": ["B"]},
                {"id": "B", "name": "B", "duration": 1, "dependencies": ["A"]},
            ]
        },
    )
    result = runner.invoke(cli.main, ["schedule", request])
    assert result.exit_code == 1
    assert "Circular dependency" in result.output


def test_inspect_writes_analysis_and_report(runner, fake_service, tmp_path):
    client = fake_service(
        FakeModelClient(
            [tool_response("identify_defects", {}), text_response("Lid needs replacing."), text_response("# Pit 3")]
        )
    )
    inspection = write_json(
        tmp_path / "inspection.json",
        {
            "id": "INS-3",
            "type": "drainage",
            "location": "Pit 3",
            "non_conformances": [{"description": "Lid missing", "severity": "minor"}],
            "context": {"inspector": "Sam"},
        },
    )

    result = runner.invoke(
        cli.main, ["inspect", inspection, "-o", str(tmp_path / "out"), "--report", "--project", "P-9"]
    )

    assert result.exit_code == 0, result.output
    [run_dir] = (tmp_path / "out").iterdir()
    assert run_dir.name.startswith("inspection_")
    saved = json.loads((run_dir / "inspection.json").read_text(encoding="utf-8"))
    assert saved["overall_status"] == "warning"
    assert saved["project_id"] == "P-9"
    assert saved["defects"][0]["location"] == "Pit 3"
    assert (run_dir / "report.md").read_text(encoding="utf-8") == "# Pit 3"
    assert "WARNING" in result.output
    assert "1 tool calls, 1 defects" in result.output
    assert len(client.calls) == 3


def test_itp_writes_report(runner, fake_service, tmp_path):
    fake_service(
        FakeModelClient(
            [
                text_response('{"overview": "Clay too wet.", "findings": [], "risks": []}'),
                text_response('["Retest moisture"]'),
                text_response("# ITP"),
            ]
        )
    )
    request = write_json(
        tmp_path / "itp.json",
        {
            "type": "earthworks",
            "material": "clay",
            "measurements": {"proctor_value": 99},
            "weather": {"conditions": "sunny", "recent_rainfall": {"amount": 45, "days_ago": 5}},
        },
    )

    result = runner.invoke(cli.main, ["itp", request, "-o", str(tmp_path / "out"), "--report-type", "summary"])

    assert result.exit_code == 0, result.output
    [run_dir] = (tmp_path / "out").iterdir()
    assert run_dir.name.startswith("itp_")
    saved = json.loads((run_dir / "itp.json").read_text(encoding="utf-8"))
    assert saved["report_type"] == "summary"
    assert saved["compliant"] is False
    assert (run_dir / "itp_report.md").read_text(encoding="utf-8") == "# ITP"
    assert "NON-COMPLIANT" in result.output
    assert "Obtain approval for: Inspection before placing fill" in result.output


def test_itp_invalid_measurement_exits_1(runner, fake_service, tmp_path):
    client = fake_service(FakeModelClient([]))
    request = write_json(
        tmp_path / "itp.json", {"inspection": {"type": "earthworks", "measurements": {"moisture_content": 140}}}
    )

    result = runner.invoke(cli.main, ["itp", request])

    assert result.exit_code == 1
    assert client.calls == []
