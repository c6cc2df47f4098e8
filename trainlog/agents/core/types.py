"""Provider-neutral conversation types for tool-using agents."""

from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

StopReason = Literal["tool_use", "end_turn", "max_tokens", "content_filtered"]


class ToolUse(BaseModel):
    """A tool call requested by the model."""

    call_id: str
    tool_name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultEntry(BaseModel):
    """A tool output fed back to the model, keyed by call id."""

    call_id: str
    tool_name: str
    content: dict[str, Any]
    is_error: bool = False


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    text: str | None = None
    tool_uses: list[ToolUse] = Field(default_factory=list)
    tool_results: list[ToolResultEntry] = Field(default_factory=list)


class ModelReply(BaseModel):
    text: str = ""
    tool_uses: list[ToolUse] = Field(default_factory=list)
    stop_reason: StopReason = "end_turn"


class ToolDefinitionSpec(BaseModel):
    name: str
    description: str
    input_schema: dict[str, Any]


class ModelCallRequest(BaseModel):
    system_prompt: str
    conversation: list[ConversationTurn]
    tools: list[ToolDefinitionSpec]
    model_id: str


class ModelProvider(Protocol):
    """Sends one conversation step to a model."""

    async def request(self, call: ModelCallRequest) -> ModelReply: ...
