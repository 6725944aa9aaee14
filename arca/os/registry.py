"""
arca/os/registry.py

The Arca registry: one city, a table of agents, and the admin role
that guards them.

Every mutating operation follows the same path:
    re-entrancy guard → role check → validation → emit → write

Nothing is written until every check has passed, so a rejected call
leaves the registry exactly as it was. Records are emitted before the
write (see arca.city.event_log for what subscribers can observe).
"""

import time
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from arca.agents.agent import Agent, AgentTraits, Persona
from arca.city.city import City
from arca.city.event_log import (
    EventLog, CityCreated, AgentCreated, AgentKilled, RoleGranted, RoleRevoked,
    entry_from_dict,
)
from arca.os.errors import (
    Unauthorized, OnlyOwnerCanClaim, InvalidCityParams, InvalidAgentParams,
    CityAlreadyInitialized, AgentNotAlive, AgentAlreadyLive,
    OwnerAgentAlreadyExists, ReentrantOperation, CannotKillProtectedAgent,
    UnknownRole,
)

# Agents at or above this reputation can never be killed
MIN_REPUTATION_SCORE = 12


class Role(str, Enum):
    ADMIN = "admin"


def _is_uint(value, bits: int) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value < 2 ** bits
    )


class Registry:
    """
    Owns all city and agent state. Callers pass their own account as
    `caller` on every operation and only ever get copies back.
    """

    def __init__(
        self,
        admin: str,
        default_traits: AgentTraits,
        token,
        clock: Callable[[], int] = None,
        event_log: EventLog = None,
    ):
        """
        admin: account granted the admin role.
        default_traits: copied into every new agent.
        token: anything with balance_of(identity) -> int.
        clock: returns the current timestamp in seconds.
        """
        self._init_state(default_traits, token, clock, event_log or EventLog())
        self._grant(Role.ADMIN, admin, sender=admin, operation="initialize")
        logger.info(f"🏙️  Arca registry initialized. Admin: {admin}")

    def _init_state(self, default_traits, token, clock, event_log):
        self._default_traits = default_traits
        self._token = token
        self._clock = clock or (lambda: int(time.time()))
        self.event_log = event_log
        self._roles: dict[Role, set[str]] = {role: set() for role in Role}
        self._city = City()
        self._agents: dict[str, Agent] = {}
        self._owner_to_agent: dict[str, str] = {}
        self._active: Optional[str] = None

    # ─── Guards ───────────────────────────────────────────────────────────────

    @contextmanager
    def _operation(self, name: str):
        """One mutating operation at a time, never interleaved."""
        if self._active is not None:
            logger.warning(f"Rejected {name}: {self._active} is still running.")
            raise ReentrantOperation(name, self._active)
        self._active = name
        try:
            yield
        finally:
            self._active = None

    def _check_role(self, role: Role, account: str, operation: str):
        if account not in self._roles[role]:
            logger.error(f"🚨 UNAUTHORIZED {operation} by {account}. Access denied.")
            raise Unauthorized(account, role.value)

    # ─── Roles ────────────────────────────────────────────────────────────────

    @staticmethod
    def _resolve_role(role) -> Role:
        try:
            return Role(role)
        except ValueError:
            logger.warning(f"Rejected unknown role {role!r}.")
            raise UnknownRole(role) from None

    def has_role(self, role, account: str) -> bool:
        """False for roles that do not exist."""
        try:
            return account in self._roles[Role(role)]
        except ValueError:
            return False

    def role_members(self, role) -> list[str]:
        return sorted(self._roles[self._resolve_role(role)])

    def _grant(self, role: Role, account: str, sender: str, operation: str):
        event = None
        if account not in self._roles[role]:
            event = RoleGranted(role=role.value, account=account, sender=sender)
        self.event_log.record(
            operation, sender, self._clock(),
            params={"role": role.value, "account": account}, event=event,
        )
        self._roles[role].add(account)

    def _revoke(self, role: Role, account: str, sender: str, operation: str):
        event = None
        if account in self._roles[role]:
            event = RoleRevoked(role=role.value, account=account, sender=sender)
        self.event_log.record(
            operation, sender, self._clock(),
            params={"role": role.value, "account": account}, event=event,
        )
        self._roles[role].discard(account)

    def grant_role(self, caller: str, role, account: str) -> None:
        with self._operation("grant_role"):
            self._check_role(Role.ADMIN, caller, "grant_role")
            role = self._resolve_role(role)
            self._grant(role, account, sender=caller, operation="grant_role")
        logger.info(f"🔑 {caller} granted {role.value} to {account}.")

    def revoke_role(self, caller: str, role, account: str) -> None:
        with self._operation("revoke_role"):
            self._check_role(Role.ADMIN, caller, "revoke_role")
            role = self._resolve_role(role)
            self._revoke(role, account, sender=caller, operation="revoke_role")
        logger.info(f"🔒 {caller} revoked {role.value} from {account}.")

    def renounce_role(self, caller: str, role, account: str) -> None:
        """An account can only give up its own roles."""
        with self._operation("renounce_role"):
            if caller != account:
                name = role.value if isinstance(role, Role) else str(role)
                logger.error(f"🚨 {caller} tried to renounce {name} for {account}.")
                raise Unauthorized(caller, name)
            role = self._resolve_role(role)
            self._revoke(role, account, sender=caller, operation="renounce_role")
        logger.info(f"🔒 {account} renounced {role.value}.")

    # ─── City ─────────────────────────────────────────────────────────────────

    def create_city(
        self,
        caller: str,
        name: str,
        treasury_balance: int,
        max_population: int,
    ) -> City:
        """
        Create the one and only city. Admin only.
        CityCreated goes out before the slot is filled.
        """
        with self._operation("create_city"):
            self._check_role(Role.ADMIN, caller, "create_city")

            if (
                not isinstance(name, str) or not name
                or not _is_uint(max_population, 256) or max_population == 0
                or not _is_uint(treasury_balance, 256)
            ):
                logger.warning(
                    f"Rejected create_city: name={name!r}, "
                    f"max_population={max_population}, treasury={treasury_balance}."
                )
                raise InvalidCityParams(
                    "City needs a name and a max population above zero"
                )

            if self._city.is_initialized:
                logger.warning(f"Rejected create_city: {self._city.name} already exists.")
                raise CityAlreadyInitialized()

            now = self._clock()
            self.event_log.record(
                "create_city", caller, now,
                params={
                    "name": name,
                    "treasury_balance": treasury_balance,
                    "max_population": max_population,
                },
                event=CityCreated(
                    creator=caller, name=name,
                    max_population=max_population, timestamp=now,
                ),
            )
            self._city = City(
                name=name,
                current_population=0,
                max_population=max_population,
                treasury_balance=treasury_balance,
                created_at=now,
                is_initialized=True,
            )

        logger.info(f"🌆 City {name} created by {caller}. Max population {max_population:,}.")
        return self.get_city()

    # ─── Agents ───────────────────────────────────────────────────────────────

    def create_agent(
        self,
        caller: str,
        name: str,
        identity: str,
        reputation_score: int,
    ) -> Agent:
        """
        Register a new agent at identity, owned by caller. Open to anyone.

        Identities are first come, first served: the caller does not have
        to control the identity, it only must not own a live agent already.

        The token balance of identity is reported in AgentCreated but the
        stored agent starts with balance 0. The two are not reconciled.
        """
        with self._operation("create_agent"):
            if not isinstance(name, str) or not name:
                logger.warning(f"Rejected create_agent from {caller}: empty name.")
                raise InvalidAgentParams("Agent needs a name")
            if not isinstance(identity, str) or not identity:
                logger.warning(f"Rejected create_agent from {caller}: empty identity.")
                raise InvalidAgentParams("Agent needs an identity")
            if not _is_uint(reputation_score, 16):
                logger.warning(
                    f"Rejected create_agent from {caller}: reputation {reputation_score} "
                    f"does not fit in 16 bits."
                )
                raise InvalidAgentParams(
                    f"Reputation score {reputation_score} is out of range"
                )

            if identity in self._agents:
                logger.warning(f"Rejected create_agent: {identity} is already taken.")
                raise AgentAlreadyLive(identity)
            if caller in self._owner_to_agent:
                logger.warning(
                    f"Rejected create_agent: {caller} already owns "
                    f"{self._owner_to_agent[caller]}."
                )
                raise OwnerAgentAlreadyExists(caller)

            queried_balance = self._token.balance_of(identity)
            now = self._clock()
            traits = self._default_traits.model_copy()

            self.event_log.record(
                "create_agent", caller, now,
                params={
                    "name": name,
                    "identity": identity,
                    "reputation_score": reputation_score,
                },
                event=AgentCreated(
                    owner=caller,
                    name=name,
                    identity=identity,
                    persona=Persona.NONE.value,
                    balance=queried_balance,
                    traits=traits,
                    timestamp=now,
                    reputation_score=reputation_score,
                ),
            )
            self._agents[identity] = Agent(
                name=name,
                owner=caller,
                identity=identity,
                persona=Persona.NONE,
                balance=0,
                traits=traits,
                date_of_birth=now,
                is_alive=True,
                reputation_score=reputation_score,
            )
            self._owner_to_agent[caller] = identity

        logger.info(
            f"🌱 Agent {name} [{identity[:10]}] born to {caller}. "
            f"Reputation {reputation_score}, token balance {queried_balance}."
        )
        return self.get_agent(identity)

    def kill_agent(self, caller: str, identity: str) -> None:
        """
        Erase an agent and free its owner slot. Admin only.
        Protected agents (reputation >= MIN_REPUTATION_SCORE) are refused.
        """
        with self._operation("kill_agent"):
            self._check_role(Role.ADMIN, caller, "kill_agent")

            agent = self._agents.get(identity)
            if agent is None:
                logger.warning(f"Rejected kill_agent: no live agent at {identity}.")
                raise AgentNotAlive(identity)
            if agent.is_protected(MIN_REPUTATION_SCORE):
                logger.warning(
                    f"🛡️  Rejected kill_agent: {agent.name} [{identity[:10]}] "
                    f"is protected (reputation {agent.reputation_score})."
                )
                raise CannotKillProtectedAgent(identity, agent.reputation_score)

            now = self._clock()
            self.event_log.record(
                "kill_agent", caller, now,
                params={"identity": identity},
                event=AgentKilled(killer=caller, identity=identity, timestamp=now),
            )
            self._owner_to_agent.pop(agent.owner, None)
            del self._agents[identity]

        logger.info(f"💀 Agent {agent.name} [{identity[:10]}] killed by {caller}.")

    def claim_agent_rewards(self, caller: str, identity: str) -> None:
        """
        Only checks that identity is alive and owned by caller.
        No rewards exist yet, so nothing is paid and nothing is recorded.
        """
        agent = self._agents.get(identity)
        if agent is None:
            logger.warning(f"Rejected claim_agent_rewards: no live agent at {identity}.")
            raise AgentNotAlive(identity)
        if agent.owner != caller:
            logger.error(f"🚨 {caller} tried to claim rewards for {identity}.")
            raise OnlyOwnerCanClaim(caller, identity)
        return None

    def withdraw_admin_funds(self, caller: str) -> None:
        """Admin only. Records the call and moves nothing."""
        with self._operation("withdraw_admin_funds"):
            self._check_role(Role.ADMIN, caller, "withdraw_admin_funds")
            self.event_log.record("withdraw_admin_funds", caller, self._clock())
        logger.info(f"🏦 {caller} called withdraw_admin_funds. Nothing to withdraw.")

    # ─── Read accessors ───────────────────────────────────────────────────────

    def get_agent(self, identity: str) -> Optional[Agent]:
        agent = self._agents.get(identity)
        return agent.model_copy(deep=True) if agent else None

    def get_owner_agent(self, owner: str) -> Optional[str]:
        return self._owner_to_agent.get(owner)

    def get_city(self) -> City:
        return self._city.model_copy()

    def list_agents(self) -> list[Agent]:
        return [a.model_copy(deep=True) for a in self._agents.values()]

    @property
    def default_traits(self) -> AgentTraits:
        return self._default_traits

    # ─── Snapshots ────────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        """Plain, JSON-friendly copy of the whole registry."""
        return {
            "city": self._city.model_dump(),
            "default_traits": self._default_traits.model_dump(),
            "agents": [a.model_dump(mode="json") for a in self._agents.values()],
            "owner_to_agent": dict(self._owner_to_agent),
            "roles": {role.value: sorted(members) for role, members in self._roles.items()},
            "transitions": [e.to_dict() for e in self.event_log.entries()],
        }

    @classmethod
    def restore(cls, snapshot: dict, token, clock: Callable[[], int] = None) -> "Registry":
        """
        Rebuild a registry from snapshot(). Raises ValueError when the
        agents break a registry invariant: a dead or duplicated identity,
        an owner holding two agents, or an owner index that does not match.
        """
        registry = cls.__new__(cls)
        registry._init_state(
            AgentTraits(**snapshot["default_traits"]),
            token,
            clock,
            EventLog([entry_from_dict(e) for e in snapshot.get("transitions", [])]),
        )
        registry._city = City(**snapshot["city"])

        raw_agents = snapshot.get("agents", [])
        if isinstance(raw_agents, dict):
            keyed = list(raw_agents.items())
        else:
            keyed = [(raw.get("identity"), raw) for raw in raw_agents]

        owners: dict[str, str] = {}
        for key, raw in keyed:
            agent = Agent(**raw)
            if key != agent.identity:
                raise ValueError(f"Snapshot agent stored under {key} has identity {agent.identity}")
            if not agent.is_alive:
                raise ValueError(f"Snapshot holds a dead agent at {agent.identity}")
            if agent.identity in registry._agents:
                raise ValueError(f"Snapshot holds two agents at {agent.identity}")
            if agent.owner in owners:
                raise ValueError(f"Snapshot owner {agent.owner} holds more than one agent")
            owners[agent.owner] = agent.identity
            registry._agents[agent.identity] = agent

        registry._owner_to_agent = dict(snapshot.get("owner_to_agent", {}))
        if owners != registry._owner_to_agent:
            raise ValueError("Snapshot owner index does not match its agents")

        for role, members in snapshot.get("roles", {}).items():
            registry._roles[Role(role)] = set(members)

        logger.info(
            f"🔄 Registry restored: {len(registry._agents)} agents, "
            f"{len(registry.event_log)} transitions."
        )
        return registry

    def __repr__(self) -> str:
        return f"Registry({self._city!r}, agents={len(self._agents)})"
