"""Base class for tools offered to a tool-using agent."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from trainlog.agents.core.types import ToolDefinitionSpec
from trainlog.core.errors import ToolInputError

InputT = TypeVar("InputT", bound=BaseModel)
ContextT = TypeVar("ContextT")


class AgentTool(ABC, Generic[InputT, ContextT]):
    """A named capability with a validated input model.

    Subclasses set ``name``, ``description`` and ``input_model`` and implement
    ``execute``. Raising from ``execute`` turns the call into an error tool
    result; it never ends the run.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    input_model: ClassVar[type[BaseModel]]

    def definition(self) -> ToolDefinitionSpec:
        return ToolDefinitionSpec(
            name=self.name,
            description=self.description,
            input_schema=self.input_model.model_json_schema(),
        )

    def parse_input(self, raw_input: dict[str, Any]) -> InputT:
        """Validate model-supplied input.

        Raises:
            ToolInputError: If the input does not match ``input_model``
        """
        try:
            return self.input_model.model_validate(raw_input)  # type: ignore[return-value]
        except ValidationError as e:
            raise ToolInputError(self.name, f"Invalid input for {self.name}: {e.errors(include_url=False)}") from e

    @abstractmethod
    async def execute(self, tool_input: InputT, context: ContextT) -> BaseModel:
        """Run the tool and return its result model."""
