"""Pydantic schemas for conversation state and intent classification."""

import enum
import uuid
from typing import Literal

from pydantic import Field

from concierge.schemas.common import BaseSchema
from concierge.schemas.mcp import CreateOrderArgs, ToolName

AgentKind = Literal["product", "order"]
TargetAgent = Literal["product", "order", "out_of_scope"]


class MessageRole(str, enum.Enum):
    """Message sender roles."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ConversationMessage(BaseSchema):
    """A single message in the conversation history."""

    role: MessageRole
    content: str


class IntentClassification(BaseSchema):
    """Routing decision for a single user utterance.

    Attributes:
        target_agent: Domain the utterance is routed to
        tool_hint: Single tool the classifier considers most appropriate
        missing_information: Follow-up question to ask before continuing
        reason: Classifier rationale, for diagnostics only
    """

    target_agent: TargetAgent
    tool_hint: ToolName | None = None
    missing_information: str | None = None
    reason: str | None = None


class ConversationState(BaseSchema):
    """Session record owned by the caller and passed in and out of each turn.

    Attributes:
        id: Session identifier, stable for the conversation's lifetime
        messages: Append-only message history
        last_intent: Classification of the most recent utterance
        customer_email: Email captured by a successful verification
        customer_pin: PIN captured by a successful verification
        customer_id: Customer ID returned by a successful verification
        pending_create_order: Order draft waiting for verification
        pending_order_request_message: Original order utterance to answer after verification
        pending_order_tool_hint: Tool the original order utterance was aiming for
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    messages: list[ConversationMessage] = Field(default_factory=list)
    last_intent: IntentClassification | None = None
    customer_email: str | None = None
    customer_pin: str | None = None
    customer_id: str | None = None
    pending_create_order: CreateOrderArgs | None = None
    pending_order_request_message: str | None = None
    pending_order_tool_hint: ToolName | None = None

    def add_message(self, role: MessageRole, content: str) -> None:
        """Append a message to the history."""
        self.messages.append(ConversationMessage(role=role, content=content))
