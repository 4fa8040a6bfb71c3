"""
CLI Chat Command - run the creative agent for one message.

Starts a fresh run for the ad, or continues its stored conversation with
--continue.
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ..agent.dependencies import AgentDependencies
from ..agent.prompts import build_freeform_system_prompt
from ..agent.providers import DEFAULT_PROVIDER
from ..agent.types import AgentResult
from ..core.exceptions import ConversationNotFoundError, UnknownProviderError
from ..core.observability import setup_logfire


@click.command()
@click.argument('ad_id')
@click.argument('message')
@click.option(
    '--provider',
    default=DEFAULT_PROVIDER,
    type=click.Choice(['openai', 'qwen', 'moonshot']),
    help=f'LLM provider (default: {DEFAULT_PROVIDER})'
)
@click.option(
    '--continue', 'continue_conversation',
    is_flag=True,
    help='Continue the stored conversation of the ad'
)
def chat(ad_id: str, message: str, provider: str, continue_conversation: bool):
    """
    Send a message to the creative agent for an ad.

    Examples:
        adcomposer chat ad-123 "Make a 30s ad for a coffee shop"
        adcomposer chat ad-123 "Use a warmer voice" --continue
        adcomposer chat ad-123 "Shorter music intro" --continue --provider qwen
    """
    setup_logfire()
    ok = asyncio.run(run_chat(ad_id, message, provider, continue_conversation))
    if not ok:
        sys.exit(1)


async def run_chat(ad_id: str, message: str, provider: str, continue_conversation: bool) -> bool:
    """
    Run the agent and print the outcome.

    Returns:
        True on success, False if the run could not start
    """
    console = Console()

    try:
        deps = AgentDependencies.create()
    except Exception as e:
        console.print(f"[red]Error initializing agent: {e}[/red]")
        console.print("[yellow]Make sure REDIS_URL, SUPABASE_URL, SUPABASE_SERVICE_KEY and the provider API key are set.[/yellow]")
        return False

    with console.status(f"[cyan]Agent is working on {ad_id}...[/cyan]"):
        try:
            if continue_conversation:
                result = await deps.executor.continue_conversation(ad_id, message, provider=provider)
            else:
                result = await deps.executor.run_agent_loop(
                    build_freeform_system_prompt(ad_id),
                    message,
                    ad_id=ad_id,
                    provider=provider,
                )
        except (ConversationNotFoundError, UnknownProviderError) as e:
            console.print(f"[red]Error: {e}[/red]")
            return False

    show_result(console, result)
    return True


def show_result(console: Console, result: AgentResult):
    """Display the assistant reply, drafts and run stats."""
    if result.message:
        console.print(Panel(Markdown(result.message), title="Agent", border_style="cyan"))

    table = Table(title="Drafts")
    table.add_column("Stream", style="bold")
    table.add_column("Version")
    for stream, version_id in result.drafts.model_dump().items():
        table.add_row(stream, version_id or "-")
    console.print(table)

    usage = result.total_usage
    tokens = f", {usage.prompt_tokens}+{usage.completion_tokens} tokens" if usage else ""
    console.print(
        f"[dim]{result.provider}: {result.iterations} iterations, "
        f"{len(result.tool_call_history)} tool calls, {result.stop_reason.value}{tokens}[/dim]"
    )
