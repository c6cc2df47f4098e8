"""pydantic-ai backed ``ModelProvider``.

Translates provider-neutral conversation turns into pydantic-ai messages and
sends them through ``pydantic_ai.direct.model_request``, so tool execution
stays under the control of our own loop.
"""

from loguru import logger
from pydantic_ai.direct import model_request
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models import ModelRequestParameters
from pydantic_ai.settings import ModelSettings
from pydantic_ai.tools import ToolDefinition

from trainlog.agents.core.types import ConversationTurn, ModelCallRequest, ModelReply, StopReason, ToolUse
from trainlog.config.settings import settings
from trainlog.services.llm.model import get_model


def _to_messages(system_prompt: str, conversation: list[ConversationTurn]) -> list[ModelMessage]:
    messages: list[ModelMessage] = []
    for index, turn in enumerate(conversation):
        if turn.role == "assistant":
            parts = []
            if turn.text:
                parts.append(TextPart(content=turn.text))
            parts.extend(
                ToolCallPart(tool_name=use.tool_name, args=use.input, tool_call_id=use.call_id) for use in turn.tool_uses
            )
            messages.append(ModelResponse(parts=parts))
            continue

        request_parts = []
        if index == 0:
            request_parts.append(SystemPromptPart(content=system_prompt))
        request_parts.extend(
            ToolReturnPart(tool_name=entry.tool_name, content=entry.content, tool_call_id=entry.call_id)
            for entry in turn.tool_results
        )
        if turn.text:
            request_parts.append(UserPromptPart(content=turn.text))
        messages.append(ModelRequest(parts=request_parts))
    return messages


def _stop_reason(response: ModelResponse, has_tool_calls: bool) -> StopReason:
    if has_tool_calls:
        return "tool_use"
    finish_reason = getattr(response, "finish_reason", None)
    if finish_reason == "length":
        return "max_tokens"
    if finish_reason == "content_filter":
        return "content_filtered"
    return "end_turn"


class PydanticAIModelProvider:
    """Model provider that calls the configured LLM through pydantic-ai."""

    def __init__(self, provider: str | None = None, max_tokens: int | None = None):
        self.provider = provider or settings.llm_provider
        self.max_tokens = max_tokens or settings.agent_max_tokens

    async def request(self, call: ModelCallRequest) -> ModelReply:
        parameters = ModelRequestParameters(
            function_tools=[
                ToolDefinition(name=tool.name, description=tool.description, parameters_json_schema=tool.input_schema)
                for tool in call.tools
            ],
            allow_text_output=True,
        )
        response = await model_request(
            get_model(self.provider, call.model_id),
            _to_messages(call.system_prompt, call.conversation),
            model_settings=ModelSettings(max_tokens=self.max_tokens),
            model_request_parameters=parameters,
        )

        text = "".join(part.content for part in response.parts if isinstance(part, TextPart))
        tool_uses = [
            ToolUse(call_id=part.tool_call_id, tool_name=part.tool_name, input=part.args_as_dict())
            for part in response.parts
            if isinstance(part, ToolCallPart)
        ]
        stop_reason = _stop_reason(response, bool(tool_uses))
        logger.debug(
            "Model response received",
            model=call.model_id,
            stop_reason=stop_reason,
            tool_calls=len(tool_uses),
            text_length=len(text),
        )
        return ModelReply(text=text, tool_uses=tool_uses, stop_reason=stop_reason)
