"""
arca/agents/factory.py

Builds the registry-wide default traits from the environment.
The same DEFAULT_* variables are used by the deploy tooling, so a
.env file shared with it yields identical agents.
"""

import os
from dotenv import load_dotenv
from loguru import logger

from .agent import AgentTraits

load_dotenv()

TRAIT_DEFAULTS = {
    "strength": 50,
    "agility": 50,
    "intelligence": 50,
    "willpower": 50,
    "manipulation": 50,
    "intimidation": 50,
    "stealth": 50,
    "perception": 50,
    "morality": 0,
    "reputation": 0,
    "wealth": 100,
}


def default_traits_from_env() -> AgentTraits:
    """
    Read DEFAULT_STRENGTH ... DEFAULT_WEALTH.
    Missing variables fall back to TRAIT_DEFAULTS. A value outside the
    trait's storage range raises pydantic.ValidationError.
    """
    values = {}
    for trait, fallback in TRAIT_DEFAULTS.items():
        raw = os.getenv(f"DEFAULT_{trait.upper()}")
        values[trait] = int(raw) if raw not in (None, "") else fallback

    traits = AgentTraits(**values)
    logger.debug(f"Default traits loaded: {traits.model_dump()}")
    return traits
