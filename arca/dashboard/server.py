"""
arca/dashboard/server.py: read-only HTTP view of a registry

Every route goes through the registry's read accessors; nothing here
can change state.

Run (demo registry):  ARCA_DASHBOARD_PORT=8000 python main.py
"""

from fastapi import FastAPI, HTTPException
from loguru import logger

from arca.os.registry import Registry


def create_app(registry: Registry) -> FastAPI:
    app = FastAPI(title="Arca Dashboard")

    @app.get("/api/city")
    async def get_city():
        return registry.get_city().model_dump()

    @app.get("/api/agents")
    async def get_agents():
        return [a.model_dump(mode="json") for a in registry.list_agents()]

    @app.get("/api/agents/{identity}")
    async def get_agent(identity: str):
        agent = registry.get_agent(identity)
        if agent is None:
            raise HTTPException(status_code=404, detail=f"No live agent at {identity}")
        return agent.model_dump(mode="json")

    @app.get("/api/owners/{owner}")
    async def get_owner_agent(owner: str):
        identity = registry.get_owner_agent(owner)
        if identity is None:
            raise HTTPException(status_code=404, detail=f"{owner} owns no live agent")
        return {"owner": owner, "identity": identity}

    @app.get("/api/events")
    async def get_events():
        return [e.to_dict() for e in registry.event_log.entries()]

    logger.info("📡 Dashboard routes mounted.")
    return app
