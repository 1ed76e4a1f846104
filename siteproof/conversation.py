"""
Conversation driver: the bounded tool-calling loop.

One run seeds a user message, then alternates model calls and local tool
executions until the model answers in text or the round-trip cap is hit.
Every assistant tool_use message is followed by exactly one tool_result
message before the next model call.
"""
from __future__ import annotations

import json
import logging
import re
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable

from .config import AIConfig
from .errors import MaxIterationsExceeded, ToolError
from .llm import ClaudeClient, extract_text, extract_tool_use
from .models import ToolExecutionResult, ToolInvocation
from .personas import select_persona
from .tokenizer import TokenSummary
from .tools.registry import ToolRegistry

LOGGER = logging.getLogger(__name__)

TokenCounter = Callable[[str, list[dict[str, Any]], list[dict[str, Any]]], TokenSummary]
InputPreparer = Callable[[str, dict[str, Any]], dict[str, Any]]

RECOMMENDATION_PATTERN = re.compile(r"(?:recommend|suggest|should|advise)[^.!?]*[.!?]", re.IGNORECASE)
WARNING_PATTERN = re.compile(r"(?:warning|caution|risk|danger|critical)[^.!?]*[.!?]", re.IGNORECASE)


@dataclass
class ConversationResult:
    answer: str
    tools_used: list[ToolExecutionResult] = field(default_factory=list)
    conversation: list[dict[str, Any]] = field(default_factory=list)
    iterations: int = 0
    recommendations: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    confidence: int = 50
    input_tokens: int = 0
    output_tokens: int = 0

    def tool_usage_stats(self) -> dict[str, Any]:
        total = len(self.tools_used)
        successful = sum(1 for t in self.tools_used if t.success)
        total_time = sum(t.execution_time for t in self.tools_used)
        return {
            "total_calls": total,
            "successful_calls": successful,
            "failed_calls": total - successful,
            "average_execution_time": round(total_time / total, 2) if total else 0,
            "tool_breakdown": dict(Counter(t.tool_name for t in self.tools_used)),
        }

    def summary(self) -> str:
        """Readable transcript; structured content is summarised."""
        lines = []
        for message in self.conversation:
            content = message["content"]
            if isinstance(content, str):
                lines.append(f"{message['role'].upper()}: {content}")
            else:
                lines.append(f"{message['role'].upper()}: [Complex content with tools]")
        return "\n\n".join(lines)


def render_query(query: str, context: dict[str, Any] | None = None) -> str:
    """Append caller context to the query as 'key: value' lines."""
    if not context:
        return query

    lines = []
    context = dict(context)
    project_id = context.pop("project_id", None)
    if project_id:
        lines.append(f"Project: {project_id}")
    metadata = context.pop("metadata", None) or {}
    for key, value in {**context, **metadata}.items():
        if value is None:
            continue
        lines.append(f"{key}: {value}")

    if not lines:
        return query
    return query + "\n\nContext:\n" + "\n".join(lines)


def extract_insights(text: str) -> tuple[list[str], list[str]]:
    """Recommendation and warning sentences found in text."""
    recommendations = [m.group(0).strip() for m in RECOMMENDATION_PATTERN.finditer(text)]
    warnings = [m.group(0).strip() for m in WARNING_PATTERN.finditer(text)]
    return recommendations, warnings


class ConversationDriver:
    def __init__(
        self,
        client: ClaudeClient,
        registry: ToolRegistry,
        config: AIConfig,
        token_counter: TokenCounter | None = None,
    ):
        self.client = client
        self.registry = registry
        self.config = config
        self.token_counter = token_counter

    def run(
        self,
        query: str,
        context: dict[str, Any] | None = None,
        system_prompt: str | None = None,
        *,
        temperature: float | None = None,
        use_tools: bool = True,
        prepare_input: InputPreparer | None = None,
    ) -> ConversationResult:
        """
        Run one bounded exchange with the model.

        Args:
            query: User query or analysis request
            context: Extra fields appended to the query
            system_prompt: Persona prompt; chosen from the query when None
            temperature: Overrides the configured tool-loop temperature
            use_tools: Advertise the tool catalog to the model
            prepare_input: Maps (tool name, model input) to the input that is
                actually executed; the transcript keeps the model's input

        Returns:
            ConversationResult with the final answer and tool log

        Raises:
            MaxIterationsExceeded: If the model keeps requesting tools past
                the configured limit
            UpstreamError: If a model call fails
        """
        if system_prompt is None:
            persona = select_persona(query)
            system_prompt = persona.prompt
            LOGGER.debug("Selected %s persona", persona.name)

        tools = self.registry.to_api() if use_tools else []
        conversation: list[dict[str, Any]] = [
            {"role": "user", "content": render_query(query, context)}
        ]
        tools_used: list[ToolExecutionResult] = []
        input_tokens = output_tokens = 0
        iterations = 0
        max_iterations = self.config.max_iterations

        while iterations < max_iterations:
            self._check_budget(system_prompt, conversation, tools)
            LOGGER.info("Model call %d (history: %d messages)", iterations + 1, len(conversation))
            response = self.client.create_message(
                system=system_prompt,
                messages=conversation,
                tools=tools or None,
                temperature=self.config.temperature if temperature is None else temperature,
                max_tokens=self.config.max_tokens,
            )
            input_tokens += response.input_tokens
            output_tokens += response.output_tokens

            invocation = extract_tool_use(response) if use_tools else None
            if invocation is None:
                answer = extract_text(response)
                conversation.append({"role": "assistant", "content": answer})
                recommendations, warnings = extract_insights(answer)
                return ConversationResult(
                    answer=answer,
                    tools_used=tools_used,
                    conversation=conversation,
                    iterations=iterations,
                    recommendations=recommendations,
                    warnings=warnings,
                    confidence=self._confidence(tools_used),
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                )

            # Text blocks plus the one tool_use block being answered
            assistant_blocks = [b for b in response.content if b.get("type") == "text"]
            assistant_blocks.append(
                {
                    "type": "tool_use",
                    "id": invocation.id,
                    "name": invocation.name,
                    "input": invocation.input,
                }
            )
            conversation.append({"role": "assistant", "content": assistant_blocks})

            if prepare_input is not None:
                invocation = ToolInvocation(
                    invocation.id, invocation.name, prepare_input(invocation.name, invocation.input)
                )
            execution = self.execute_tool(invocation)
            tools_used.append(execution)
            conversation.append(
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "tool_result",
                            "tool_use_id": invocation.id,
                            "content": json.dumps(execution.output, default=str),
                        }
                    ],
                }
            )
            iterations += 1

        LOGGER.error("Max iterations reached (%d) without a final answer", max_iterations)
        raise MaxIterationsExceeded(max_iterations)

    def execute_tool(self, invocation: ToolInvocation) -> ToolExecutionResult:
        """Run one invocation; dispatch errors become an {error} result."""
        start = time.perf_counter()
        try:
            output = self.registry.execute(invocation.name, invocation.input)
            success = not (isinstance(output, dict) and "error" in output)
            error = output.get("error") if not success else None
        except ToolError as e:
            output = {"error": str(e)}
            success = False
            error = str(e)
        elapsed_ms = (time.perf_counter() - start) * 1000

        LOGGER.info(
            "Tool %s %s in %.1fms", invocation.name, "succeeded" if success else "failed", elapsed_ms
        )
        return ToolExecutionResult(
            tool_name=invocation.name,
            input=invocation.input,
            output=output,
            success=success,
            execution_time=round(elapsed_ms, 3),
            error=error,
        )

    def _check_budget(
        self, system_prompt: str, conversation: list[dict[str, Any]], tools: list[dict[str, Any]]
    ) -> None:
        if self.token_counter is None or not self.config.check_token_budget:
            return
        summary = self.token_counter(system_prompt, conversation, tools)
        if summary.warning_message:
            LOGGER.warning(summary.warning_message)

    @staticmethod
    def _confidence(tools_used: list[ToolExecutionResult]) -> int:
        if not tools_used:
            return 50
        successful = sum(1 for t in tools_used if t.success)
        return round(successful / len(tools_used) * 100)
