from pydantic import BaseModel, Field


class City(BaseModel):
    """
    The single city slot.
    Reads as the zero value until create_city fills it. After that it
    never changes: current_population and treasury_balance are inert.
    """

    name: str = ""
    current_population: int = 0
    max_population: int = Field(default=0, ge=0)
    treasury_balance: int = Field(default=0, ge=0)
    created_at: int = 0
    is_initialized: bool = False

    def __repr__(self) -> str:
        if not self.is_initialized:
            return "City <uninitialized>"
        return (
            f"City {self.name} | Population: {self.current_population}/"
            f"{self.max_population} | Treasury: {self.treasury_balance:,}"
        )
