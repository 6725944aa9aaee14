from enum import Enum
from pydantic import BaseModel, Field, ConfigDict

UINT8_MAX = 255
INT8_MIN, INT8_MAX = -128, 127
UINT16_MAX = 65535


class Persona(str, Enum):
    NONE = "none"
    POLICE = "police"
    THIEF = "thief"


class AgentTraits(BaseModel):
    """
    The fixed stat block every agent is born with.
    Values are conventions ([0,100], morality/reputation [-100,100]);
    only the storage width of each field is enforced.
    """

    strength: int = Field(default=0, ge=0, le=UINT8_MAX)
    agility: int = Field(default=0, ge=0, le=UINT8_MAX)
    intelligence: int = Field(default=0, ge=0, le=UINT8_MAX)
    willpower: int = Field(default=0, ge=0, le=UINT8_MAX)
    manipulation: int = Field(default=0, ge=0, le=UINT8_MAX)
    intimidation: int = Field(default=0, ge=0, le=UINT8_MAX)
    stealth: int = Field(default=0, ge=0, le=UINT8_MAX)
    perception: int = Field(default=0, ge=0, le=UINT8_MAX)
    morality: int = Field(default=0, ge=INT8_MIN, le=INT8_MAX)
    reputation: int = Field(default=0, ge=INT8_MIN, le=INT8_MAX)
    wealth: int = Field(default=0, ge=0, le=UINT16_MAX)

    model_config = ConfigDict(frozen=True)


class Agent(BaseModel):
    """
    One registered participant.
    The record only exists while the agent lives: killing erases it,
    so is_alive is always True for anything stored in the registry.
    """

    name: str
    owner: str
    identity: str
    persona: Persona = Persona.NONE
    balance: int = 0  # Never credited, see AgentCreated
    traits: AgentTraits = Field(default_factory=AgentTraits)
    date_of_birth: int = 0
    is_alive: bool = True
    reputation_score: int = Field(default=0, ge=0, le=UINT16_MAX)

    model_config = ConfigDict(use_enum_values=True)

    def is_protected(self, min_reputation: int) -> bool:
        """High-reputation agents can never be killed"""
        return self.reputation_score >= min_reputation

    def __repr__(self) -> str:
        return (
            f"Agent {self.name} [{self.identity[:10]}] | Owner: {self.owner[:10]} | "
            f"Persona: {self.persona} | Reputation: {self.reputation_score}"
        )
