class RegistryError(Exception):
    """Base class for every rejected registry operation."""


class AuthorizationError(RegistryError):
    pass


class ValidationError(RegistryError):
    pass


class StateError(RegistryError):
    pass


class InvariantProtectionError(RegistryError):
    pass


class Unauthorized(AuthorizationError):
    def __init__(self, account: str, role: str):
        self.account = account
        self.role = role
        super().__init__(f"{account} is missing role {role}")


class OnlyOwnerCanClaim(AuthorizationError):
    def __init__(self, caller: str, identity: str):
        self.caller = caller
        self.identity = identity
        super().__init__(f"{caller} does not own agent {identity}")


class InvalidCityParams(ValidationError):
    pass


class InvalidAgentParams(ValidationError):
    pass


class CityAlreadyInitialized(StateError):
    def __init__(self):
        super().__init__("City has already been created")


class AgentNotAlive(StateError):
    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"No live agent at {identity}")


class AgentAlreadyLive(StateError):
    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"A live agent already exists at {identity}")


class OwnerAgentAlreadyExists(StateError):
    def __init__(self, owner: str):
        self.owner = owner
        super().__init__(f"{owner} already owns a live agent")


class ReentrantOperation(StateError):
    def __init__(self, operation: str, active: str):
        self.operation = operation
        self.active = active
        super().__init__(f"Cannot run {operation} while {active} is in progress")


class CannotKillProtectedAgent(InvariantProtectionError):
    def __init__(self, identity: str, reputation_score: int):
        self.identity = identity
        self.reputation_score = reputation_score
        super().__init__(
            f"Agent {identity} is protected (reputation {reputation_score})"
        )


class UnknownRole(ValidationError):
    def __init__(self, role):
        self.role = role
        super().__init__(f"Unknown role {role!r}")
