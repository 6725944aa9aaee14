from datetime import datetime, timezone
from rich.console import Console
from rich.table import Table

from arca.os.registry import Registry, MIN_REPUTATION_SCORE, Role

console = Console()


def _fmt_time(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def build_agent_table(registry: Registry) -> Table:
    """Table of every live agent, most reputable first"""
    table = Table(title="🏙️  Arca: Live Agents", show_lines=True)

    table.add_column("Name", style="cyan")
    table.add_column("Identity", style="magenta")
    table.add_column("Owner", style="yellow")
    table.add_column("Persona", style="blue")
    table.add_column("Reputation", style="green")
    table.add_column("Born", style="white")

    for agent in sorted(registry.list_agents(), key=lambda a: a.reputation_score, reverse=True):
        if agent.is_protected(MIN_REPUTATION_SCORE):
            reputation = f"{agent.reputation_score} 🛡️"
        else:
            reputation = f"[red]{agent.reputation_score}[/red]"

        table.add_row(
            agent.name,
            agent.identity,
            agent.owner,
            agent.persona,
            reputation,
            _fmt_time(agent.date_of_birth),
        )

    return table


def print_registry_status(registry: Registry, out: Console = None):
    """Print the agent table followed by a one-line city summary"""
    out = out or console
    out.print(build_agent_table(registry))

    city = registry.get_city()
    admins = ", ".join(registry.role_members(Role.ADMIN)) or "-"
    if city.is_initialized:
        out.print(
            f"\n[bold]City:[/bold] [cyan]{city.name}[/cyan] | "
            f"Population: [green]{city.current_population}[/green]/"
            f"{city.max_population:,} | "
            f"Treasury: [yellow]{city.treasury_balance:,}[/yellow] | "
            f"Admins: {admins}\n"
        )
    else:
        out.print(f"\n[bold]City:[/bold] [red]not created yet[/red] | Admins: {admins}\n")
