"""Tests for the generic tool-using agent loop."""

import pytest
from pydantic import BaseModel

from tests.fakes import ScriptedProvider, text_reply, tool_call, tool_reply
from trainlog.agents.core.agent import MAX_ITERATIONS_MESSAGE, ToolAgent, truncate_for_log
from trainlog.agents.core.tool import AgentTool
from trainlog.agents.core.types import ModelReply


class EchoInput(BaseModel):
    value: str


class EchoResult(BaseModel):
    echoed: str


class EchoTool(AgentTool[EchoInput, dict]):
    name = "echo"
    description = "Echo a value back."
    input_model = EchoInput

    async def execute(self, tool_input: EchoInput, context: dict) -> EchoResult:
        context.setdefault("calls", []).append(tool_input.value)
        if tool_input.value == "explode":
            raise RuntimeError("echo exploded")
        return EchoResult(echoed=tool_input.value)


class RecordingAgent(ToolAgent[dict]):
    def __init__(self, provider, blocked_values=(), **kwargs):
        super().__init__(
            provider=provider,
            system_prompt="You echo things.",
            tools=[EchoTool()],
            context={},
            model_id="test-model",
            **kwargs,
        )
        self.blocked_values = set(blocked_values)
        self.successes = []
        self.errors = []

    def enforce_tool_blocking(self, tool_name, tool_input):
        if tool_input.value in self.blocked_values:
            return EchoResult(echoed="blocked")
        return None

    def on_tool_success(self, tool_name, tool_input, result):
        self.successes.append((tool_name, result))

    def on_tool_error(self, tool_name, tool_input, error):
        self.errors.append((tool_name, error))


def _last_tool_results(agent: ToolAgent):
    return agent.conversation[-2].tool_results


@pytest.mark.asyncio
async def test_tool_results_fed_back_then_final_text():
    provider = ScriptedProvider([tool_reply(tool_call("echo", "c1", value="hi")), text_reply("All done.")])
    agent = RecordingAgent(provider)

    response = await agent.converse("echo hi")

    assert response == "All done."
    assert agent.successes == [("echo", EchoResult(echoed="hi"))]
    results = _last_tool_results(agent)
    assert results[0].call_id == "c1"
    assert results[0].is_error is False
    assert results[0].content == {"echoed": "hi"}
    assert provider.calls[0].tools[0].name == "echo"
    assert provider.calls[0].model_id == "test-model"


@pytest.mark.asyncio
async def test_batched_tool_calls_run_sequentially_in_order():
    provider = ScriptedProvider(
        [
            tool_reply(tool_call("echo", "c1", value="a"), tool_call("echo", "c2", value="b")),
            text_reply("ok"),
        ]
    )
    agent = RecordingAgent(provider)

    await agent.converse("two")

    assert agent.context["calls"] == ["a", "b"]
    assert [entry.call_id for entry in _last_tool_results(agent)] == ["c1", "c2"]


@pytest.mark.asyncio
async def test_unknown_tool_returns_error_result():
    provider = ScriptedProvider([tool_reply(tool_call("teleport", "c1")), text_reply("Sorry.")])
    agent = RecordingAgent(provider)

    await agent.converse("go")

    entry = _last_tool_results(agent)[0]
    assert entry.is_error is True
    assert entry.content == {"error": "Tool 'teleport' not found"}


@pytest.mark.asyncio
async def test_tool_exception_becomes_error_result():
    provider = ScriptedProvider([tool_reply(tool_call("echo", "c1", value="explode")), text_reply("It failed.")])
    agent = RecordingAgent(provider)

    response = await agent.converse("boom")

    assert response == "It failed."
    entry = _last_tool_results(agent)[0]
    assert entry.is_error is True
    assert entry.content == {"error": "echo exploded"}
    assert agent.errors[0][0] == "echo"


@pytest.mark.asyncio
async def test_invalid_tool_input_reported_to_model():
    provider = ScriptedProvider([tool_reply(tool_call("echo", "c1", wrong=1)), text_reply("bad input")])
    agent = RecordingAgent(provider)

    await agent.converse("bad")

    entry = _last_tool_results(agent)[0]
    assert entry.is_error is True
    assert "Invalid input for echo" in entry.content["error"]
    assert "calls" not in agent.context


@pytest.mark.asyncio
async def test_blocked_tool_is_not_executed():
    provider = ScriptedProvider([tool_reply(tool_call("echo", "c1", value="secret")), text_reply("blocked")])
    agent = RecordingAgent(provider, blocked_values={"secret"})

    await agent.converse("secret")

    entry = _last_tool_results(agent)[0]
    assert entry.is_error is True
    assert entry.content == {"echoed": "blocked"}
    assert "calls" not in agent.context
    assert agent.successes == []


@pytest.mark.asyncio
async def test_max_iterations_ends_run():
    replies = [tool_reply(tool_call("echo", f"c{i}", value=str(i))) for i in range(10)]
    agent = RecordingAgent(ScriptedProvider(replies), max_iterations=3)

    response = await agent.converse("loop forever")

    assert response == MAX_ITERATIONS_MESSAGE
    assert agent.context["calls"] == ["0", "1", "2"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("stop_reason", "expected"),
    [
        ("max_tokens", "Response exceeded token limit."),
        ("content_filtered", "Response was filtered due to content policy."),
    ],
)
async def test_truncated_stop_reasons_end_run(stop_reason, expected):
    agent = RecordingAgent(ScriptedProvider([ModelReply(text="", stop_reason=stop_reason)]))
    assert await agent.converse("hello") == expected


@pytest.mark.asyncio
async def test_conversation_persists_across_calls():
    provider = ScriptedProvider([text_reply("first"), text_reply("second")])
    agent = RecordingAgent(provider)

    await agent.converse("one")
    await agent.converse("two")

    user_texts = [turn.text for turn in provider.calls[1].conversation if turn.role == "user"]
    assert user_texts == ["one", "two"]


def test_truncate_for_log_limits_length():
    assert truncate_for_log("a" * 300).endswith("...")
    assert len(truncate_for_log("a" * 300)) == 203
    assert truncate_for_log({"a": 1}) == '{"a": 1}'
