from types import SimpleNamespace

import anthropic
import httpx
import pytest

from siteproof.config import AIConfig, RetryPolicy
from siteproof.errors import ConfigurationError, UpstreamError
from siteproof.llm import ClaudeClient, ModelResponse, extract_text, extract_tool_use, normalize_response

REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def rate_limit_error():
    return anthropic.RateLimitError(
        "rate limited", response=httpx.Response(429, request=REQUEST), body=None
    )


def bad_request_error():
    return anthropic.BadRequestError(
        "bad request", response=httpx.Response(400, request=REQUEST), body=None
    )


def sdk_message(*blocks, input_tokens=7, output_tokens=3):
    return SimpleNamespace(
        content=list(blocks),
        stop_reason="end_turn",
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


class FakeMessages:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def create(self, **request):
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeSDK:
    def __init__(self, outcomes):
        self.messages = FakeMessages(outcomes)


@pytest.fixture
def retry_config():
    return AIConfig(
        api_key="k",
        retry=RetryPolicy(max_attempts=3, initial_delay=1.0, max_delay=10.0, backoff_factor=2.0),
    )


def test_retries_rate_limit_then_succeeds(retry_config):
    sleeps = []
    sdk = FakeSDK(
        [rate_limit_error(), anthropic.APIConnectionError(request=REQUEST),
         sdk_message(SimpleNamespace(type="text", text="hi"))]
    )
    client = ClaudeClient(retry_config, sdk_client=sdk, sleep=sleeps.append)

    response = client.create_message(system="s", messages=[{"role": "user", "content": "q"}])

    assert extract_text(response) == "hi"
    assert response.input_tokens == 7
    assert len(sdk.messages.requests) == 3
    assert sleeps == [1.0, 2.0]


def test_gives_up_after_max_attempts(retry_config):
    sleeps = []
    sdk = FakeSDK([rate_limit_error() for _ in range(3)])
    client = ClaudeClient(retry_config, sdk_client=sdk, sleep=sleeps.append)

    with pytest.raises(UpstreamError) as exc:
        client.create_message(system="s", messages=[])

    assert exc.value.attempts == 3
    assert "Failed after 3 attempts" in str(exc.value)
    assert len(sleeps) == 2


def test_status_errors_are_not_retried(retry_config):
    sdk = FakeSDK([bad_request_error()])
    client = ClaudeClient(retry_config, sdk_client=sdk, sleep=lambda s: None)

    with pytest.raises(UpstreamError) as exc:
        client.create_message(system="s", messages=[])

    assert exc.value.status_code == 400
    assert len(sdk.messages.requests) == 1


def test_request_shape(retry_config):
    sdk = FakeSDK([sdk_message(SimpleNamespace(type="text", text="x"))])
    client = ClaudeClient(retry_config, sdk_client=sdk)
    client.create_message(system="sys", messages=[], tools=[{"name": "t"}], temperature=0.3)

    [request] = sdk.messages.requests
    assert request["model"] == retry_config.model
    assert request["system"] == "sys"
    assert request["temperature"] == 0.3
    assert request["max_tokens"] == retry_config.max_tokens
    assert request["tools"] == [{"name": "t"}]


def test_missing_api_key_fails_before_network():
    client = ClaudeClient(AIConfig(api_key=None))
    with pytest.raises(ConfigurationError):
        client.create_message(system="s", messages=[])


def test_normalize_blocks():
    message = sdk_message(
        SimpleNamespace(type="text", text="Checking."),
        SimpleNamespace(type="tool_use", id="toolu_9", name="get_australian_standard",
                        input={"standard_code": "AS_2870"}),
    )
    response = normalize_response(message)

    assert response.content[0] == {"type": "text", "text": "Checking."}
    invocation = extract_tool_use(response)
    assert invocation.id == "toolu_9"
    assert invocation.input == {"standard_code": "AS_2870"}


def test_no_tool_use():
    assert extract_tool_use(ModelResponse(content=[{"type": "text", "text": "x"}])) is None
