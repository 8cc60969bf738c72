"""Tests for tool-call detection in model responses."""

from agentcrew.crew.toolcall import ToolCall, find_json_object, parse_tool_call, strip_code_fence


class TestParseToolCall:
    def test_bare_json(self):
        call = parse_tool_call('{"tool_name": "EchoTool", "tool_parameters": {"input": "hi"}}')
        assert call == ToolCall("EchoTool", {"input": "hi"})

    def test_fenced_block_with_prose(self):
        response = (
            "Sure, let me look that up.\n"
            "```json\n"
            '{\n  "tool_name": "web_fetch",\n  "tool_parameters": {"url": "https://x.org"}\n}\n'
            "```\n"
            "I'll report back."
        )
        call = parse_tool_call(response)
        assert call.tool_name == "web_fetch"
        assert call.tool_parameters == {"url": "https://x.org"}

    def test_whole_response_fenced(self):
        response = '```json\n{"tool_name": "EchoTool", "tool_parameters": {}}\n```'
        assert parse_tool_call(response) == ToolCall("EchoTool", {})

    def test_nested_braces_and_braces_in_strings(self):
        response = (
            '{"tool_name": "EchoTool", "tool_parameters": '
            '{"input": "a } tricky { string", "opts": {"deep": {"x": 1}}}}'
        )
        call = parse_tool_call(response)
        assert call.tool_parameters["input"] == "a } tricky { string"
        assert call.tool_parameters["opts"] == {"deep": {"x": 1}}

    def test_skips_objects_without_both_fields(self):
        response = (
            'Context: {"note": "not a call"} then '
            '{"tool_name": "EchoTool", "tool_parameters": {"input": "second"}}'
        )
        assert parse_tool_call(response).tool_parameters == {"input": "second"}

    def test_wrong_types_are_not_a_call(self):
        assert parse_tool_call('{"tool_name": 3, "tool_parameters": {}}') is None
        assert parse_tool_call('{"tool_name": "", "tool_parameters": {}}') is None
        assert parse_tool_call('{"tool_name": "EchoTool", "tool_parameters": "x"}') is None

    def test_malformed_json_is_final_answer(self):
        assert parse_tool_call('{"tool_name": "EchoTool", "tool_parameters": {') is None

    def test_plain_text_is_final_answer(self):
        assert parse_tool_call("The answer is 42.") is None
        assert parse_tool_call("") is None


class TestHelpers:
    def test_strip_code_fence(self):
        assert strip_code_fence("```python\nprint(1)\n```") == "print(1)"
        assert strip_code_fence("  no fence ") == "no fence"

    def test_find_json_object_by_keys(self):
        text = 'Plan below\n{"a": 1}\n{"sub_tasks": [], "manager_notes": "n"}'
        assert find_json_object(text, ("sub_tasks",)) == {"sub_tasks": [], "manager_notes": "n"}
        assert find_json_object(text, ("missing",)) is None
