"""Tests for the model-node router."""

from reactgraph.common.schemas import Message
from reactgraph.core.routing import Route, route_from_model
from reactgraph.core.state import State


class TestRouteFromModel:
    """Tests for routing after the model node."""

    def test_tool_calls_route_to_tools(self, search_call):
        state = State(
            messages=(Message.user("q"), Message.assistant(tool_calls=[search_call]))
        )
        assert route_from_model(state) is Route.TOOLS

    def test_final_answer_routes_to_end(self):
        state = State(messages=(Message.user("q"), Message.assistant("answer")))
        assert route_from_model(state) is Route.END

    def test_non_assistant_last_message_routes_to_end(self, search_call):
        """Only the latest message is inspected."""
        state = State(
            messages=(
                Message.assistant(tool_calls=[search_call]),
                Message.tool_result(search_call, "done"),
            )
        )
        assert route_from_model(state) is Route.END

    def test_empty_state_routes_to_end(self):
        assert route_from_model(State()) is Route.END

    def test_router_does_not_modify_state(self, search_call):
        state = State(messages=(Message.assistant(tool_calls=[search_call]),))
        before = state.model_dump()

        route_from_model(state)

        assert state.model_dump() == before

    def test_outcomes_match_agent_edges(self):
        """Every routing outcome has a target in the agent graph."""
        assert set(Route) == {Route.TOOLS, Route.END}
