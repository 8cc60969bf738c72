"""Prompt templates used by reasoning agents and the multi-agent strategies."""

import json
from typing import Any, Iterable, Mapping, Sequence, Tuple

AGENT_PROMPT = """\
You are an AI agent with the name '{name}' and role '{role}'.
Your current task is: {description} (Task ID: {task_id})
Input data for the task: {input}
{expected}
Relevant information from memory:
{memory}

You have the following tools available:
{tools}

To use a tool, respond *only* with a JSON object in the format:
{{
  "tool_name": "tool_name_here",
  "tool_parameters": {{"param1_name": "param1_value", ...}}
}}

If you do not need a tool and have the final answer for the task '{description}', \
provide the answer directly as plain text.

Conversation history (including previous tool outputs or errors):
{history}

What is your next step or final answer?"""

PLAN_INSTRUCTIONS = """\
A JSON plan that breaks the task into sub-tasks for the workers below.

Available workers:
{workers}

Output ONLY a JSON object of the form:
{{
  "sub_tasks": [
    {{"task_description": "...", "assigned_agent_name": "...", "expected_output": "..."}}
  ],
  "manager_notes": "optional notes for the final synthesis"
}}

Rules:
- Sub-tasks run one after another, in list order
- Assign each sub-task to exactly one of the worker names above
- Return an empty "sub_tasks" list only if you can answer the task yourself"""

HIERARCHICAL_SYNTHESIS = """\
Original Task: {description}
Synthesize the final answer for the original task based on the following sub-task results:
{results}{notes}"""

CONSENSUAL_SYNTHESIS = """\
Original Task: {description}
Synthesize a final answer for the original task based on the following perspectives:
{perspectives}"""

NO_MEMORY = "No relevant information found in memory."
NO_TOOLS = "No tools available."
NO_HISTORY = "No history yet."


def describe_tools(tools: Iterable[Any]) -> str:
    blocks = []
    for tool in tools:
        lines = [f"Tool: {tool.name}", f"Description: {tool.description}", "Expected Parameters:"]
        for param, desc in tool.parameter_schema.items():
            lines.append(f"  - {param}: {desc}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) or NO_TOOLS


def describe_memory(snippets: Sequence[Any]) -> str:
    if not snippets:
        return NO_MEMORY
    body = "\n- ".join(str(s) for s in snippets)
    return f"Previously recorded information that might be relevant:\n- {body}"


def _format_input(data: Mapping[str, Any]) -> str:
    if not data:
        return "{}"
    try:
        return json.dumps(data, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(dict(data))


def build_agent_prompt(
    name: str,
    role: str,
    task,
    memory_snippets: Sequence[Any],
    tools: Iterable[Any],
    history: str,
) -> str:
    expected = f"Expected output: {task.expected_output}\n" if task.expected_output else ""
    return AGENT_PROMPT.format(
        name=name,
        role=role,
        description=task.description,
        task_id=task.id,
        input=_format_input(task.input),
        expected=expected,
        memory=describe_memory(memory_snippets),
        tools=describe_tools(tools),
        history=history or NO_HISTORY,
    )


def build_plan_instructions(workers: Iterable[Any]) -> str:
    listing = "\n".join(f"- {w.name}: {w.role}" for w in workers)
    return PLAN_INSTRUCTIONS.format(workers=listing)


def build_hierarchical_synthesis(
    description: str, results: Iterable[Tuple[str, str]], notes: str = "",
) -> str:
    lines = "".join(f"\n- Sub-task: {desc}\n  Result: {result}" for desc, result in results)
    notes_block = f"\n\nManager's initial notes for synthesis: {notes}" if notes else ""
    return HIERARCHICAL_SYNTHESIS.format(description=description, results=lines, notes=notes_block)


def build_consensual_synthesis(description: str, outputs: Iterable[Tuple[str, str]]) -> str:
    lines = "".join(f"\n- Agent {name} said: '{output}'" for name, output in outputs)
    return CONSENSUAL_SYNTHESIS.format(description=description, perspectives=lines)
