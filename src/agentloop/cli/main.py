"""Command line interface for running the agent loop."""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from agentloop.config import DEFAULT_CONFIG_PATH, LoopConfig
from agentloop.config_provider import ConfigProvider
from agentloop.domain.conversation import Conversation
from agentloop.domain.execution_context import ExecutionContext
from agentloop.domain.messages import Message
from agentloop.engine.agent_loop import run_loop
from agentloop.infra.tool_library import ToolLibrary
from agentloop.llm.chat_model_client import ChatModelClient

app = typer.Typer()
console = Console()
CONFIG_PATH_HELP = (
    f"JSON config file (defaults to {DEFAULT_CONFIG_PATH.as_posix()})."
)


@app.command()
def ask(
    prompt: str,
    max_iterations: Optional[int] = typer.Option(
        None,
        "--max-iterations",
        "-n",
        min=1,
        help="Override the tool iteration ceiling.",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help=CONFIG_PATH_HELP,
    ),
):
    """
    Ask the agent a question and print its final answer.
    """
    library = None
    try:
        config = ConfigProvider(config_path).load()
        logging.basicConfig(level=config.log_level)
        loop_config = config.loop_config()
        if max_iterations is not None:
            loop_config = LoopConfig(
                **{**loop_config.model_dump(), "max_iterations": max_iterations}
            )
        library = ToolLibrary(timeout_seconds=config.tool_timeout_seconds)
        client = ChatModelClient.from_config(config)
        conversation = Conversation(max_entries=config.max_history_messages)
        conversation.append(Message.user(prompt))
        context = ExecutionContext(session_id="cli", user_id="cli")

        def show_text(text: str) -> None:
            console.print(f"[dim]{text}[/dim]")

        def show_tools(names: List[str]) -> None:
            console.print(f"[bold blue]Tools:[/bold blue] {', '.join(names)}")

        result = run_loop(
            conversation,
            config.system_prompt,
            context,
            loop_config,
            client,
            library,
            tool_catalog=library.definitions(),
            on_text=show_text,
            on_tool_start=show_tools,
        )
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    finally:
        if library is not None:
            library.close()

    console.print(f"[green]{result.final_response}[/green]")
    tools = ", ".join(sorted(result.tools_used)) or "none"
    console.print(
        f"[dim]status={result.status.value} iterations={result.iterations} "
        f"tokens={result.total_input_tokens}+{result.total_output_tokens} "
        f"tools={tools}[/dim]"
    )


@app.command("config")
def show_config(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help=CONFIG_PATH_HELP,
    ),
):
    """
    Print the effective loop configuration.
    """
    try:
        config = ConfigProvider(config_path).load()
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    table = Table(title="Agent loop configuration")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("litellm_use_proxy", str(config.use_litellm_proxy()))
    for name, value in config.loop_config().model_dump().items():
        if isinstance(value, (set, frozenset)):
            value = ", ".join(sorted(value))
        table.add_row(name, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
