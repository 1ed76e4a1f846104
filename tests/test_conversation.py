import json

import pytest

from conftest import AlwaysToolClient, FakeModelClient, text_response, tool_response
from siteproof.conversation import extract_insights, render_query
from siteproof.errors import MaxIterationsExceeded
from siteproof.models import ToolExecutionResult
from siteproof.personas import COMPLIANCE_PROMPT, WEATHER_PROMPT
from siteproof.tokenizer import TokenSummary


class TestConversationDriver:
    def test_text_answer_without_tools(self, make_driver):
        client = FakeModelClient([text_response("All good. You should monitor the weather.")])
        result = make_driver(client).run("hello there")

        assert result.answer == "All good. You should monitor the weather."
        assert result.iterations == 0
        assert result.tools_used == []
        assert result.confidence == 50
        assert result.recommendations == ["should monitor the weather."]
        assert len(client.calls) == 1
        assert client.calls[0]["tools"]

    def test_compaction_scenario_round_trip(self, make_driver):
        query = "Check if 19.8 kN/m³ dry density meets 98% proctor requirement with 20.2 kN/m³ MDD"
        client = FakeModelClient(
            [
                tool_response(
                    "check_compaction_compliance",
                    {"dry_density": 19.8, "max_dry_density": 20.2, "required_percentage": 98},
                    text="Let me check that.",
                ),
                text_response("The result passes at 98.0%."),
            ]
        )
        result = make_driver(client).run(query)

        assert result.iterations == 1
        assert result.confidence == 100
        [execution] = result.tools_used
        assert execution.success is True
        assert execution.output["passes"] is True
        assert execution.output["achieved_percentage"] == 98.0

        # compliance keywords pick the compliance persona
        assert client.calls[0]["system"] == COMPLIANCE_PROMPT

        # second request carries assistant tool_use then exactly one tool_result
        history = client.calls[1]["messages"]
        assert [m["role"] for m in history] == ["user", "assistant", "user"]
        assistant_blocks = history[1]["content"]
        assert [b["type"] for b in assistant_blocks] == ["text", "tool_use"]
        [tool_result] = history[2]["content"]
        assert tool_result["type"] == "tool_result"
        assert tool_result["tool_use_id"] == "toolu_1"
        assert json.loads(tool_result["content"])["passes"] is True

    def test_only_first_tool_use_is_answered(self, make_driver):
        response = tool_response("get_australian_standard", {"standard_code": "AS_3798"})
        response.content.append(
            {"type": "tool_use", "id": "toolu_2", "name": "get_curing_requirements",
             "input": {"temperature": 20, "concrete_type": "standard"}}
        )
        client = FakeModelClient([response, text_response("done")])
        result = make_driver(client).run("standard please")

        assert [t.tool_name for t in result.tools_used] == ["get_australian_standard"]
        assistant = client.calls[1]["messages"][1]["content"]
        assert [b.get("id") for b in assistant if b["type"] == "tool_use"] == ["toolu_1"]

    @pytest.mark.parametrize("max_iterations", [1, 3, 5])
    def test_iteration_cap_is_exact(self, make_driver, max_iterations):
        client = AlwaysToolClient()
        driver = make_driver(client, max_iterations=max_iterations)

        with pytest.raises(MaxIterationsExceeded) as exc:
            driver.run("keep going")

        assert exc.value.iterations == max_iterations
        assert len(client.calls) == max_iterations

    def test_unknown_tool_is_fed_back(self, make_driver):
        client = FakeModelClient(
            [tool_response("launch_rockets", {}), text_response("Sorry, I cannot do that.")]
        )
        result = make_driver(client).run("do something")

        [execution] = result.tools_used
        assert execution.success is False
        assert execution.output == {"error": "Unknown tool: launch_rockets"}
        assert result.confidence == 0
        tool_result = client.calls[1]["messages"][2]["content"][0]
        assert "Unknown tool" in json.loads(tool_result["content"])["error"]

    def test_missing_input_is_fed_back(self, make_driver):
        client = FakeModelClient(
            [tool_response("check_compaction_compliance", {"dry_density": 19.8}), text_response("ok")]
        )
        result = make_driver(client).run("compaction")

        [execution] = result.tools_used
        assert execution.success is False
        assert "max_dry_density" in execution.output["error"]

    def test_handler_error_counts_as_failure(self, make_driver):
        client = FakeModelClient(
            [
                tool_response("check_compaction_compliance", {"dry_density": 1, "max_dry_density": 0}),
                text_response("ok"),
            ]
        )
        result = make_driver(client).run("compaction")
        assert result.tools_used[0].success is False
        assert result.tools_used[0].error.startswith("Tool execution failed")

    def test_prepare_input_fills_missing_fields(self, make_driver):
        client = FakeModelClient(
            [tool_response("check_compaction_compliance", {"dry_density": 19.8}), text_response("ok")]
        )
        result = make_driver(client).run(
            "compaction", prepare_input=lambda name, tool_input: {**tool_input, "max_dry_density": 20.2}
        )

        [execution] = result.tools_used
        assert execution.success is True
        assert execution.input == {"dry_density": 19.8, "max_dry_density": 20.2}
        assert execution.output["achieved_percentage"] == 98.0
        assert client.calls[1]["messages"][1]["content"][0]["input"] == {"dry_density": 19.8}

    def test_explicit_prompt_temperature_and_no_tools(self, make_driver):
        client = FakeModelClient([text_response("{}")])
        make_driver(client).run("x", system_prompt=WEATHER_PROMPT, temperature=0.7, use_tools=False)

        call = client.calls[0]
        assert call["system"] == WEATHER_PROMPT
        assert call["temperature"] == 0.7
        assert call["tools"] is None

    def test_token_usage_accumulates(self, make_driver):
        client = FakeModelClient(
            [tool_response("get_australian_standard", {"standard_code": "AS_2870"}), text_response("x")]
        )
        result = make_driver(client).run("standards")
        assert result.input_tokens == 20
        assert result.output_tokens == 10

    def test_token_budget_warning_is_logged(self, config, registry, caplog):
        from siteproof.conversation import ConversationDriver

        def counter(system_prompt, messages, tools):
            return TokenSummary([], 10, 190_000, False, "WARNING: too many tokens")

        driver = ConversationDriver(FakeModelClient([text_response("ok")]), registry, config, counter)
        with caplog.at_level("WARNING"):
            driver.run("hello")
        assert "too many tokens" in caplog.text

    def test_stats_and_summary(self, make_driver):
        client = FakeModelClient(
            [
                tool_response("get_australian_standard", {"standard_code": "AS_3798"}),
                tool_response("launch_rockets", {}, tool_id="toolu_2"),
                text_response("done"),
            ]
        )
        result = make_driver(client).run("standard")

        stats = result.tool_usage_stats()
        assert stats["total_calls"] == 2
        assert stats["successful_calls"] == 1
        assert stats["failed_calls"] == 1
        assert stats["tool_breakdown"] == {"get_australian_standard": 1, "launch_rockets": 1}
        assert result.confidence == 50

        summary = result.summary()
        assert summary.startswith("USER: standard")
        assert "ASSISTANT: [Complex content with tools]" in summary
        assert summary.endswith("ASSISTANT: done")


def test_render_query_puts_project_first():
    rendered = render_query(
        "Check lot 4", {"site": "North", "project_id": "P-1", "metadata": {"lot": 4}}
    )
    assert rendered == "Check lot 4\n\nContext:\nProject: P-1\nsite: North\nlot: 4"


def test_render_query_without_context():
    assert render_query("q") == "q"
    assert render_query("q", {}) == "q"


def test_extract_insights():
    recommendations, warnings = extract_insights(
        "We recommend a retest. Caution: the trench is wet! Nothing else"
    )
    assert recommendations == ["recommend a retest."]
    assert warnings == ["Caution: the trench is wet!"]


def test_tool_execution_result_json_round_trip():
    original = ToolExecutionResult(
        tool_name="check_compaction_compliance",
        input={"dry_density": 19.8, "max_dry_density": 20.2},
        output={"passes": True, "recommendations": ["a", "b"]},
        success=True,
        execution_time=1.25,
    )
    restored = ToolExecutionResult.from_json(original.to_json())
    assert restored.tool_name == original.tool_name
    assert restored.input == original.input
    assert restored.output == original.output
    assert restored.success is original.success
