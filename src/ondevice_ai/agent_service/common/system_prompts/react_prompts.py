# prompts for the ReAct agent loop

import json
from ondevice_ai.agent_service.common.tools.base import ToolDescriptor
from ondevice_ai.agent_service.common.types.agent_outputs import AgentStep

class ReActPrompts():
    """
    System prompt + transcript rendering for the Thought / Action / Observation loop.
    The format here must stay in sync with ReActOutputParser.
    """

    react_system_prompt = """You are an intelligent AI assistant with access to various tools. Your goal is to help the user by thinking through problems step by step and using the available tools when needed.

AVAILABLE TOOLS:
{tool_descriptions}

RESPONSE FORMAT
Respond with exactly ONE of the following per turn.

To use a tool:
Thought: [your reasoning about what to do next]
Action: {{"tool": "tool_name", "args": {{"param": "value"}}}}

When you have enough information to answer:
Thought: [your final reasoning]
Final Answer: [your complete response to the user]

IMPORTANT RULES
- Always start with a Thought.
- The Action must be a single valid JSON object with "tool" and "args" fields. Only one Action per turn.
- Only use tools listed under AVAILABLE TOOLS, spelled exactly as shown.
- Never write an Observation yourself; the system adds it after the tool runs.
- If a tool fails, read the error and try a different approach.
- If no tool is needed, answer directly with a Final Answer.
"""

    no_tools_notice = "No tools are currently available. Answer from your own knowledge."

    continue_instruction = "Continue with your next Thought and either an Action or a Final Answer."

    @staticmethod
    def describe_tool(tool: ToolDescriptor) -> str:
        properties: dict = tool.parameters.get("properties", {})
        required = set(tool.required_params)
        params = "\n".join(
            f"    {key} ({param.get('type', 'string')}): {param.get('description', '')}"
            f"{' (required)' if key in required else ' (optional)'}"
            for key, param in properties.items()
        )
        return f"{tool.name}: {tool.description}\n  Parameters:\n{params or '    None'}"

    @staticmethod
    def build_system_prompt(tools: list[ToolDescriptor]) -> str:
        descriptions = "\n\n".join(ReActPrompts.describe_tool(tool) for tool in tools)
        return ReActPrompts.react_system_prompt.format(
            tool_descriptions=descriptions or ReActPrompts.no_tools_notice
        )

    @staticmethod
    def format_step(step: AgentStep) -> str:
        lines = []
        if step.thought:
            lines.append(f"Thought: {step.thought}")
        if step.action is not None:
            lines.append(f"Action: {json.dumps({'tool': step.action.tool, 'args': step.action.args})}")
        if step.observation is not None:
            lines.append(f"Observation: {step.observation}")
        return "\n".join(lines)

    @staticmethod
    def build_transcript(user_query: str, steps: list[AgentStep]) -> str:
        """User prompt for one reasoning call: the query followed by every prior step."""
        parts = [f"User Query: {user_query}"]
        parts.extend(text for text in (ReActPrompts.format_step(step) for step in steps) if text)
        if steps:
            parts.append(ReActPrompts.continue_instruction)
        return "\n\n".join(parts)
