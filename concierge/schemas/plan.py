"""Tool-call plans, refusals and validation results.

Planner output and validator output are tagged unions discriminated by
an explicit ``type`` / ``ok`` field so every branch in the orchestrator
is matched on the tag rather than on which attributes happen to be set.
"""

import enum
from typing import Annotated, Any, Literal

from pydantic import Field

from concierge.schemas.common import BaseSchema
from concierge.schemas.conversation import AgentKind
from concierge.schemas.mcp import CreateOrderArgs, ToolName


class RefusalCategory(str, enum.Enum):
    """Closed set of reasons a turn can end without calling tools."""

    OUT_OF_SCOPE = "OUT_OF_SCOPE"
    MISSING_AUTH = "MISSING_AUTH"
    ACTION_NOT_SUPPORTED = "ACTION_NOT_SUPPORTED"
    INSUFFICIENT_INFORMATION = "INSUFFICIENT_INFORMATION"
    POLICY_RESTRICTION = "POLICY_RESTRICTION"
    TOOL_UNAVAILABLE = "TOOL_UNAVAILABLE"


REFUSAL_TEMPLATES: dict[RefusalCategory, str] = {
    RefusalCategory.OUT_OF_SCOPE: (
        "Sorry, I can't help with that request. I can assist with products or orders."
    ),
    RefusalCategory.MISSING_AUTH: "I can help once you provide your customer ID and PIN.",
    RefusalCategory.ACTION_NOT_SUPPORTED: (
        "That action isn't supported yet. I can help with available order details."
    ),
    RefusalCategory.INSUFFICIENT_INFORMATION: "I need a bit more information to continue.",
    RefusalCategory.POLICY_RESTRICTION: (
        "I'm unable to help with that request due to policy restrictions."
    ),
    RefusalCategory.TOOL_UNAVAILABLE: (
        "I'm unable to complete that right now because the tools I use are "
        "unavailable or failing. Please try again later."
    ),
}


def template_for(category: RefusalCategory) -> str:
    """Return the default user-facing text for a refusal category."""
    return REFUSAL_TEMPLATES[category]


class ToolCallPlan(BaseSchema):
    """A single planned tool invocation."""

    tool: ToolName
    args: dict[str, Any] = Field(default_factory=dict)
    description: str = ""


class AgentToolPlan(BaseSchema):
    """Planner result: tools to run, in order."""

    type: Literal["tool_plan"] = "tool_plan"
    target_agent: AgentKind
    tool_calls: list[ToolCallPlan] = Field(min_length=1)

    def uses(self, tool: ToolName) -> bool:
        """Whether the plan contains a call to ``tool``."""
        return any(call.tool == tool for call in self.tool_calls)


class AgentRefusal(BaseSchema):
    """Planner result: no safe action, tell the user why."""

    type: Literal["refusal"] = "refusal"
    category: RefusalCategory
    message: str | None = None
    pending_create_order_args: CreateOrderArgs | None = None
    pending_order_request_message: str | None = None
    pending_order_tool_hint: ToolName | None = None

    def reply(self) -> str:
        """User-facing text: the explicit message or the category template."""
        return self.message or template_for(self.category)


AgentPlanResult = Annotated[AgentToolPlan | AgentRefusal, Field(discriminator="type")]


class ValidationSuccess(BaseSchema):
    """The plan passed every policy check."""

    ok: Literal[True] = True


class ValidationFailure(BaseSchema):
    """The plan violates the tool policy and must not run."""

    ok: Literal[False] = False
    category: RefusalCategory
    reason: str


ValidationResult = ValidationSuccess | ValidationFailure
