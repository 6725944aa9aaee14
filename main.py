"""
main.py: Arca demo run.

Plays the founding of Gotham against an in-memory token:
    - the admin creates the city
    - Bruce (reputation 15) is born and survives a kill attempt
    - Joker (reputation 5) is born, killed, and its owner registers again

Optional, from .env:
    - DEFAULT_* trait values (see arca/agents/factory.py)
    - ARCA_ADMIN, ARKA_TOKEN
    - DATABASE_URL           → the final state is saved to PostgreSQL
    - ARCA_DASHBOARD_PORT    → serve the read-only dashboard afterwards

Run:
    python main.py
"""

import os
from dotenv import load_dotenv
load_dotenv()

from loguru import logger
from rich.console import Console
from rich.panel import Panel

from arca.agents.factory import default_traits_from_env
from arca.economy.token_engine import InMemoryToken
from arca.os.registry import Registry
from arca.os.errors import RegistryError
from arca.os.console import print_registry_status

console = Console()

ADMIN = os.getenv("ARCA_ADMIN", "0xAdmin")
TOKEN_SYMBOL = os.getenv("ARKA_TOKEN", "ARKA")


def run_demo() -> Registry:
    token = InMemoryToken(symbol=TOKEN_SYMBOL)
    token.mint("0xBruce", 2_500)

    registry = Registry(ADMIN, default_traits_from_env(), token)
    console.print(Panel.fit("🌆 THE FOUNDING OF GOTHAM", style="bold yellow"))

    registry.create_city(ADMIN, "Gotham", treasury_balance=1_000_000, max_population=500_000)

    registry.create_agent("0xAlfred", "Bruce", "0xBruce", reputation_score=15)
    registry.create_agent("0xHarley", "Joker", "0xJoker", reputation_score=5)

    for identity in ("0xBruce", "0xJoker"):
        try:
            registry.kill_agent(ADMIN, identity)
        except RegistryError as e:
            console.print(f"[yellow]⚠️  {type(e).__name__}: {e}[/yellow]")

    registry.create_agent("0xHarley", "Joker II", "0xJoker2", reputation_score=5)

    print_registry_status(registry, console)
    return registry


if __name__ == "__main__":
    registry = run_demo()

    if os.getenv("DATABASE_URL"):
        from arca.memory.persistence import RegistryPersistence
        persistence = RegistryPersistence(os.getenv("DATABASE_URL"))
        persistence.init_schema()
        persistence.save(registry)

    port = os.getenv("ARCA_DASHBOARD_PORT")
    if port:
        import uvicorn
        from arca.dashboard.server import create_app
        logger.info(f"Dashboard on http://localhost:{port}")
        uvicorn.run(create_app(registry), host="0.0.0.0", port=int(port))
