"""Tests for prompt assembly."""

from agentcrew.crew.prompts import (
    NO_HISTORY,
    NO_MEMORY,
    NO_TOOLS,
    build_agent_prompt,
    build_consensual_synthesis,
    build_hierarchical_synthesis,
    describe_memory,
    describe_tools,
)
from agentcrew.crew.tasks import Task


class TestAgentPrompt:
    def test_empty_sections_have_placeholders(self):
        prompt = build_agent_prompt("a", "role", Task("x"), [], [], "")
        assert NO_MEMORY in prompt and NO_TOOLS in prompt and NO_HISTORY in prompt
        assert "Expected output:" not in prompt
        assert "Input data for the task: {}" in prompt

    def test_history_is_included_verbatim(self):
        prompt = build_agent_prompt("a", "role", Task("x"), [], [], "Tool T output: 1")
        assert "Conversation history (including previous tool outputs or errors):\nTool T output: 1" in prompt

    def test_describe_memory(self):
        assert describe_memory(["one", "two"]).endswith("- one\n- two")


class TestSynthesisPrompts:
    def test_hierarchical(self):
        text = build_hierarchical_synthesis("Plan a trip", [("book flights", "done")], "keep it cheap")
        assert text == (
            "Original Task: Plan a trip\n"
            "Synthesize the final answer for the original task based on the following sub-task results:\n"
            "\n- Sub-task: book flights\n  Result: done"
            "\n\nManager's initial notes for synthesis: keep it cheap"
        )

    def test_hierarchical_without_notes(self):
        text = build_hierarchical_synthesis("t", [("s", "r")])
        assert "Manager's initial notes" not in text

    def test_consensual(self):
        text = build_consensual_synthesis("Name it", [("A", "Foo"), ("B", "Bar")])
        assert text.endswith("perspectives:\n\n- Agent A said: 'Foo'\n- Agent B said: 'Bar'")


def test_describe_tools_lists_parameters():
    class _Tool:
        name = "Search"
        description = "Searches."
        parameter_schema = {"q": "query text"}

    assert describe_tools([_Tool()]) == "Tool: Search\nDescription: Searches.\nExpected Parameters:\n  - q: query text"
