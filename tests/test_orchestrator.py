"""End-to-end tests for OrchestratorService.handle_turn.

Covers:
- Out-of-scope and clarification replies without tool calls
- Product listing with catalog truncation in the answer prompt
- Order creation deferred until verification, then submitted for the verified customer
- Tool failures replaced with a single apology
- Input state never modified; identical inputs give identical outputs
- Model failures propagating when both tiers fail
"""

import json

import pytest

from concierge.integrations.mcp.client import McpError
from concierge.schemas.conversation import ConversationState, MessageRole
from concierge.schemas.plan import RefusalCategory, template_for
from concierge.services.planners.order_planner import ASK_CREDENTIALS, ASK_VERIFY_BEFORE_ORDER
from tests.conftest import (
    CUSTOMER_EMAIL,
    CUSTOMER_PIN,
    DRAFT_CUSTOMER_ID,
    ORDER_ID,
    VERIFIED_CUSTOMER_ID,
    StubToolBackend,
    classification,
    text_response,
)

ORDER_PAYLOAD = {
    "customer_id": DRAFT_CUSTOMER_ID,
    "items": [{"sku": "MON-0054", "quantity": 2, "unit_price": "199.99"}],
}
ORDER_MESSAGE = f"Please order these for me: {json.dumps(ORDER_PAYLOAD)}"
VERIFY_MESSAGE = f"My email is {CUSTOMER_EMAIL} and my PIN is {CUSTOMER_PIN}"


def _catalog(count: int) -> str:
    items = [f"- MON-{i:04d}: Monitor {i}" for i in range(count)]
    return "\n\n".join([f"Found {count} products:", *items])


def _answer_prompt(primary) -> str:
    """Prompt passed to the model for the final answer (second call)."""
    return primary.ainvoke.call_args_list[1].args[0]


# ---------------------------------------------------------------------------
# Turns that end without tools
# ---------------------------------------------------------------------------


class TestTurnsWithoutTools:
    """Turns that reply without calling the backend."""

    @pytest.mark.asyncio
    async def test_out_of_scope(self, orchestrator_factory, tool_backend) -> None:
        orchestrator, primary, _ = orchestrator_factory(
            [classification("out_of_scope")], tool_backend=tool_backend
        )

        result = await orchestrator.handle_turn("What's the weather in Paris?")

        assert result.reply == template_for(RefusalCategory.OUT_OF_SCOPE)
        assert tool_backend.calls == []
        assert primary.ainvoke.await_count == 1
        assert [m.role for m in result.state.messages] == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
        ]
        assert result.state.last_intent.target_agent == "out_of_scope"

    @pytest.mark.asyncio
    async def test_unparseable_classification_is_out_of_scope(
        self, orchestrator_factory, tool_backend
    ) -> None:
        orchestrator, _, _ = orchestrator_factory(
            ["Sure! That sounds like a product question."], tool_backend=tool_backend
        )

        result = await orchestrator.handle_turn("Do you have monitors?")

        assert result.reply == template_for(RefusalCategory.OUT_OF_SCOPE)
        assert result.state.last_intent.reason == "parse failure"
        assert tool_backend.calls == []

    @pytest.mark.asyncio
    async def test_non_string_target_is_out_of_scope(
        self, orchestrator_factory, tool_backend
    ) -> None:
        orchestrator, _, _ = orchestrator_factory(
            [json.dumps({"target_agent": ["order"], "tool_hint": "list_orders"})],
            tool_backend=tool_backend,
        )

        result = await orchestrator.handle_turn("hello")

        assert result.reply == template_for(RefusalCategory.OUT_OF_SCOPE)
        assert tool_backend.calls == []

    @pytest.mark.asyncio
    async def test_product_clarification(self, orchestrator_factory, tool_backend) -> None:
        orchestrator, _, _ = orchestrator_factory(
            [classification("product", "get_product", missing_information="Which SKU do you mean?")],
            tool_backend=tool_backend,
        )

        result = await orchestrator.handle_turn("Tell me about that product")

        assert result.reply == "Which SKU do you mean?"
        assert tool_backend.calls == []

    @pytest.mark.asyncio
    async def test_order_ignores_missing_information(
        self, orchestrator_factory, tool_backend
    ) -> None:
        orchestrator, _, _ = orchestrator_factory(
            [
                classification("order", "list_orders", missing_information="Which account?"),
                "You have two orders.",
            ],
            tool_backend=tool_backend,
        )

        result = await orchestrator.handle_turn("Show my orders")

        assert result.reply == "You have two orders."
        assert tool_backend.tool_names == ["list_orders"]

    @pytest.mark.asyncio
    async def test_verification_without_credentials(
        self, orchestrator_factory, tool_backend
    ) -> None:
        orchestrator, _, _ = orchestrator_factory(
            [classification("order", "verify_customer_pin")], tool_backend=tool_backend
        )

        result = await orchestrator.handle_turn("I want to verify my account")

        assert result.reply == ASK_CREDENTIALS
        assert tool_backend.calls == []


# ---------------------------------------------------------------------------
# Product turns
# ---------------------------------------------------------------------------


class TestProductTurns:
    """Catalog questions."""

    @pytest.mark.asyncio
    async def test_monitor_listing_overrides_classifier_hint(self, orchestrator_factory) -> None:
        backend = StubToolBackend({"list_products": text_response(_catalog(45))})
        orchestrator, primary, _ = orchestrator_factory(
            [classification("product", "search_products"), "Here are the monitors in stock."],
            tool_backend=backend,
        )

        result = await orchestrator.handle_turn("Show me all monitors in stock")

        assert result.reply == "Here are the monitors in stock."
        assert backend.calls == [("list_products", {"category": "Monitors", "is_active": True})]

        prompt = _answer_prompt(primary)
        assert "Show me all monitors in stock" in prompt
        assert "Tool 1 (list_products):" in prompt
        assert "MON-0019" in prompt
        assert "MON-0020" not in prompt
        assert "(Showing first 20 products; additional items are omitted.)" in prompt

    @pytest.mark.asyncio
    async def test_product_lookup_by_sku(self, orchestrator_factory) -> None:
        backend = StubToolBackend({"get_product": text_response("MON-0054: 27in monitor, $199.99")})
        orchestrator, _, _ = orchestrator_factory(
            [classification("product", "get_product"), "MON-0054 is a 27in monitor."],
            tool_backend=backend,
        )

        result = await orchestrator.handle_turn("What is MON-0054?")

        assert result.reply == "MON-0054 is a 27in monitor."
        assert backend.calls == [("get_product", {"sku": "MON-0054"})]

    @pytest.mark.asyncio
    async def test_new_session_gets_an_id(self, orchestrator_factory, tool_backend) -> None:
        orchestrator, _, _ = orchestrator_factory(
            [classification("product", "search_products"), "Found one."],
            tool_backend=tool_backend,
        )

        result = await orchestrator.handle_turn("ergonomic keyboard")

        assert result.state.id
        assert [m.content for m in result.state.messages] == ["ergonomic keyboard", "Found one."]


# ---------------------------------------------------------------------------
# Order creation round trip
# ---------------------------------------------------------------------------


class TestOrderCreation:
    """An order is only submitted after the customer verifies."""

    @pytest.mark.asyncio
    async def test_round_trip(self, orchestrator_factory) -> None:
        # Turn 1: the order request is held back pending verification
        backend = StubToolBackend()
        orchestrator, _, _ = orchestrator_factory(
            [classification("order", "create_order")], tool_backend=backend
        )

        first = await orchestrator.handle_turn(ORDER_MESSAGE)

        assert first.reply == ASK_VERIFY_BEFORE_ORDER
        assert backend.calls == []
        draft = first.state.pending_create_order
        assert draft is not None
        assert draft.customer_id == DRAFT_CUSTOMER_ID
        assert draft.items[0].currency == "USD"
        assert first.state.pending_order_request_message == ORDER_MESSAGE
        assert first.state.pending_order_tool_hint == "create_order"

        # Turn 2: verification chains the stored draft for the verified customer
        backend = StubToolBackend(
            {
                "verify_customer_pin": text_response(
                    f"Customer verified: Jane Doe (ID: {VERIFIED_CUSTOMER_ID})"
                ),
                "create_order": text_response(f"Order {ORDER_ID} created."),
            }
        )
        orchestrator, primary, _ = orchestrator_factory(
            [classification("order", "verify_customer_pin"), f"Your order {ORDER_ID} is placed."],
            tool_backend=backend,
        )

        second = await orchestrator.handle_turn(VERIFY_MESSAGE, first.state)

        assert second.reply == f"Your order {ORDER_ID} is placed."
        assert backend.tool_names == ["verify_customer_pin", "create_order"]
        assert backend.calls[0][1] == {"email": CUSTOMER_EMAIL, "pin": CUSTOMER_PIN}
        assert backend.calls[1][1] == {
            "customer_id": VERIFIED_CUSTOMER_ID,
            "items": [
                {"sku": "MON-0054", "quantity": 2, "unit_price": "199.99", "currency": "USD"}
            ],
        }

        state = second.state
        assert state.customer_id == VERIFIED_CUSTOMER_ID
        assert state.customer_email == CUSTOMER_EMAIL
        assert state.customer_pin == CUSTOMER_PIN
        assert state.pending_create_order is None
        assert state.pending_order_request_message is None
        assert state.pending_order_tool_hint is None

        # The answer addresses the original order request
        prompt = _answer_prompt(primary)
        assert ORDER_MESSAGE in prompt
        assert "Tool 1 (verify_customer_pin):" in prompt
        assert "Tool 2 (create_order):" in prompt

    @pytest.mark.asyncio
    async def test_failed_verification_keeps_draft(self, orchestrator_factory) -> None:
        state = ConversationState.model_validate(
            {
                "pending_create_order": ORDER_PAYLOAD,
                "pending_order_request_message": ORDER_MESSAGE,
                "pending_order_tool_hint": "create_order",
            }
        )
        backend = StubToolBackend(
            {"verify_customer_pin": text_response("Invalid email or PIN.", is_error=True)}
        )
        orchestrator, primary, _ = orchestrator_factory(
            [classification("order", "verify_customer_pin")], tool_backend=backend
        )

        result = await orchestrator.handle_turn(VERIFY_MESSAGE, state)

        assert result.reply == template_for(RefusalCategory.TOOL_UNAVAILABLE)
        assert backend.tool_names == ["verify_customer_pin"]
        assert primary.ainvoke.await_count == 1
        assert result.state.pending_create_order is not None
        assert result.state.pending_order_request_message == ORDER_MESSAGE
        assert result.state.customer_id is None

    @pytest.mark.asyncio
    async def test_verification_without_customer_id(self, orchestrator_factory) -> None:
        """Without an ID in the response the draft is submitted unchanged."""
        state = ConversationState.model_validate({"pending_create_order": ORDER_PAYLOAD})
        backend = StubToolBackend({"verify_customer_pin": text_response("Verified.")})
        orchestrator, _, _ = orchestrator_factory(
            [classification("order", "verify_customer_pin"), "Done."], tool_backend=backend
        )

        result = await orchestrator.handle_turn(VERIFY_MESSAGE, state)

        assert result.reply == "Done."
        assert backend.calls[1][1]["customer_id"] == DRAFT_CUSTOMER_ID
        assert result.state.customer_id is None
        assert result.state.customer_email == CUSTOMER_EMAIL
        assert result.state.pending_create_order is None


# ---------------------------------------------------------------------------
# Tool failures
# ---------------------------------------------------------------------------


class TestToolFailures:
    """Backend failures never leak partial output."""

    @pytest.mark.asyncio
    async def test_tool_error_flag(self, orchestrator_factory) -> None:
        backend = StubToolBackend({"get_order": text_response("Order not found", is_error=True)})
        orchestrator, primary, _ = orchestrator_factory(
            [classification("order", "get_order")], tool_backend=backend
        )

        result = await orchestrator.handle_turn(f"Where is {ORDER_ID}?")

        assert result.reply == template_for(RefusalCategory.TOOL_UNAVAILABLE)
        assert "Order not found" not in result.reply
        assert primary.ainvoke.await_count == 1

    @pytest.mark.asyncio
    async def test_transport_failure(self, orchestrator_factory) -> None:
        backend = StubToolBackend({"list_orders": McpError("MCP request failed: connection refused")})
        orchestrator, _, _ = orchestrator_factory(
            [classification("order", "list_orders")], tool_backend=backend
        )

        result = await orchestrator.handle_turn("List my orders")

        assert result.reply == template_for(RefusalCategory.TOOL_UNAVAILABLE)


# ---------------------------------------------------------------------------
# State handling
# ---------------------------------------------------------------------------


class TestStateHandling:
    """The caller's state is an input value, never mutated."""

    @pytest.mark.asyncio
    async def test_input_state_not_mutated(self, orchestrator_factory, tool_backend) -> None:
        state = ConversationState()
        state.add_message(MessageRole.USER, "hi")
        before = state.model_dump()

        orchestrator, _, _ = orchestrator_factory(
            [classification("order", "create_order")], tool_backend=tool_backend
        )
        result = await orchestrator.handle_turn(ORDER_MESSAGE, state)

        assert state.model_dump() == before
        assert result.state.id == state.id
        assert len(result.state.messages) == 3

    @pytest.mark.asyncio
    async def test_identical_inputs_identical_outputs(self, orchestrator_factory) -> None:
        state = ConversationState()
        results = []
        for _ in range(2):
            backend = StubToolBackend({"list_orders": text_response("2 orders")})
            orchestrator, _, _ = orchestrator_factory(
                [classification("order", "list_orders"), "You have 2 orders."],
                tool_backend=backend,
            )
            results.append(await orchestrator.handle_turn("my orders", state))

        assert results[0].reply == results[1].reply
        assert results[0].state.model_dump() == results[1].state.model_dump()

    @pytest.mark.asyncio
    async def test_model_failure_propagates(self, orchestrator_factory, tool_backend) -> None:
        state = ConversationState()
        orchestrator, _, _ = orchestrator_factory(
            [RuntimeError("primary down")],
            tool_backend=tool_backend,
            secondary_contents=[RuntimeError("secondary down")],
        )

        with pytest.raises(RuntimeError, match="secondary down"):
            await orchestrator.handle_turn("hello", state)

        assert state.messages == []
        assert tool_backend.calls == []

    @pytest.mark.asyncio
    async def test_secondary_model_answers(self, orchestrator_factory, tool_backend) -> None:
        orchestrator, _, secondary = orchestrator_factory(
            [RuntimeError("primary down"), RuntimeError("primary down")],
            tool_backend=tool_backend,
            secondary_contents=[classification("order", "list_orders"), "Two orders."],
        )

        result = await orchestrator.handle_turn("my orders")

        assert result.reply == "Two orders."
        assert secondary.ainvoke.await_count == 2
