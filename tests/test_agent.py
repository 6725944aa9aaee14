import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from pydantic import ValidationError

from arca.agents.agent import Agent, AgentTraits, Persona
from arca.agents.factory import default_traits_from_env, TRAIT_DEFAULTS
from arca.city.city import City


def clear_trait_env(monkeypatch):
    for trait in TRAIT_DEFAULTS:
        monkeypatch.delenv(f"DEFAULT_{trait.upper()}", raising=False)


def test_agent_birth_defaults():
    agent = Agent(name="Bruce", owner="0xA", identity="0xX")
    assert agent.persona == Persona.NONE
    assert agent.balance == 0
    assert agent.is_alive is True
    assert agent.traits == AgentTraits()


def test_protection_threshold():
    assert Agent(name="a", owner="o", identity="i", reputation_score=12).is_protected(12)
    assert not Agent(name="a", owner="o", identity="i", reputation_score=11).is_protected(12)


def test_traits_accept_full_storage_range():
    traits = AgentTraits(strength=255, morality=-128, reputation=127, wealth=65535)
    assert traits.strength == 255
    assert traits.morality == -128


@pytest.mark.parametrize("field,value", [
    ("strength", 256),
    ("perception", -1),
    ("morality", 128),
    ("reputation", -129),
    ("wealth", 65536),
])
def test_traits_reject_out_of_storage_range(field, value):
    with pytest.raises(ValidationError):
        AgentTraits(**{field: value})


def test_traits_are_immutable():
    traits = AgentTraits(strength=10)
    with pytest.raises(ValidationError):
        traits.strength = 99


def test_city_zero_value():
    city = City()
    assert city.is_initialized is False
    assert city.name == ""
    assert city.max_population == 0
    assert "uninitialized" in repr(city)


def test_default_traits_fallbacks(monkeypatch):
    clear_trait_env(monkeypatch)
    traits = default_traits_from_env()
    assert traits.model_dump() == TRAIT_DEFAULTS


def test_default_traits_from_env(monkeypatch):
    clear_trait_env(monkeypatch)
    monkeypatch.setenv("DEFAULT_STRENGTH", "80")
    monkeypatch.setenv("DEFAULT_MORALITY", "-40")
    monkeypatch.setenv("DEFAULT_WEALTH", "")

    traits = default_traits_from_env()

    assert traits.strength == 80
    assert traits.morality == -40
    assert traits.wealth == TRAIT_DEFAULTS["wealth"]


def test_default_traits_out_of_range(monkeypatch):
    clear_trait_env(monkeypatch)
    monkeypatch.setenv("DEFAULT_STEALTH", "300")
    with pytest.raises(ValidationError):
        default_traits_from_env()
