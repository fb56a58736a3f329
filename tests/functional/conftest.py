from pathlib import Path
from typing import List

import pytest
from typer.testing import CliRunner
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    ToolMessage,
)

from agentloop.domain.tool import FunctionTool
from agentloop.llm import chat_model_client as chat_model_client_module


class FakeChatOpenAI:
    """
    Deterministic fake LLM for functional tests.

    Args:
        args: Unused positional arguments.
        kwargs: Unused keyword arguments.
    """

    def __init__(self, *args, **kwargs) -> None:
        self._bound_tools: List[dict] = []

    def bind_tools(self, tools: List[dict]) -> "FakeChatOpenAI":
        """
        Returns a copy of the fake with tools bound.

        Args:
            tools: Tool schema list from the client.

        Returns:
            A fake instance that may request tool calls.
        """
        bound = FakeChatOpenAI()
        bound._bound_tools = list(tools)
        return bound

    def invoke(self, input: List[BaseMessage], **kwargs) -> AIMessage:
        """
        Returns a deterministic response based on the user prompt.

        Args:
            input: The messages passed to the LLM.

        Returns:
            An AIMessage response.
        """
        prompt = next(
            (
                str(message.content)
                for message in input
                if isinstance(message, HumanMessage)
            ),
            "",
        )
        tool_messages = [m for m in input if isinstance(m, ToolMessage)]
        usage = {"input_tokens": 20, "output_tokens": 5, "total_tokens": 25}

        if "Loop forever" in prompt:
            if not self._bound_tools:
                return AIMessage(
                    content="Summary: notes.txt says hello from notes.",
                    usage_metadata=usage,
                )
            return AIMessage(
                content="",
                tool_calls=[
                    {
                        "name": "read_file",
                        "args": {"path": "notes.txt"},
                        "id": f"read-{len(tool_messages) + 1}",
                    }
                ],
                usage_metadata=usage,
            )
        if "Read notes.txt" in prompt:
            if tool_messages:
                return AIMessage(
                    content=f"The file says: {tool_messages[-1].content}",
                    usage_metadata=usage,
                )
            return AIMessage(
                content="I will read the file first, then answer.",
                tool_calls=[
                    {
                        "name": "read_file",
                        "args": {"path": "notes.txt"},
                        "id": "read-1",
                    }
                ],
                usage_metadata=usage,
            )
        if "Say hello" in prompt:
            return AIMessage(content="Hello.", usage_metadata=usage)
        return AIMessage(content="Okay.", usage_metadata=usage)


def build_read_file_tool(root: Path, calls: List[str]) -> FunctionTool:
    """Build a read_file tool confined to ``root`` that records its calls."""

    def handler(args, context):
        calls.append(args["path"])
        return (root / args["path"]).read_text(encoding="utf-8")

    return FunctionTool(
        name="read_file",
        description="Read a UTF-8 text file relative to the workspace.",
        input_schema={
            "type": "object",
            "properties": {"path": {"type": "string"}},
            "required": ["path"],
        },
        handler=handler,
    )


@pytest.fixture
def read_file_tool():
    return build_read_file_tool


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """
    Creates an isolated workspace with a JSON config and a fake model.
    """
    config_dir = tmp_path / ".agentloop"
    config_dir.mkdir()
    (config_dir / "config.json").write_text(
        '{"openai_api_key": "test-key", "max_iterations": 4}', encoding="utf-8"
    )
    (tmp_path / "notes.txt").write_text("hello from notes", encoding="utf-8")
    monkeypatch.setattr(chat_model_client_module, "ChatOpenAI", FakeChatOpenAI)

    # Change CWD to tmp_path
    monkeypatch.chdir(tmp_path)

    return tmp_path
