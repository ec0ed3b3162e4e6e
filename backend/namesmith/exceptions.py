"""
Typed errors raised by the generation core
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from namesmith.services.access_guard import AccessDecision


class NamesmithError(Exception):
    """Base exception for the generation core"""
    pass


class GenerationValidationError(NamesmithError):
    """Request failed validation before a session was created"""
    pass


class InvalidModelError(GenerationValidationError):
    """A requested model identifier is not in the catalog"""

    def __init__(self, model_id: str):
        super().__init__(f"Unknown model: {model_id}")
        self.model_id = model_id


class NoAvailableModelsError(GenerationValidationError):
    """Every requested model is disabled, in maintenance or lacks credentials"""

    def __init__(self, requested: Optional[list] = None):
        super().__init__("None of the requested models are currently available")
        self.requested = requested or []


class GenerationRejectedError(NamesmithError):
    """Request was denied by the access guard or the per-user concurrency cap"""

    def __init__(self, decision: "AccessDecision"):
        super().__init__(decision.message or decision.reason)
        self.decision = decision

    @property
    def reason(self) -> str:
        return self.decision.reason

    @property
    def retry_after(self) -> Optional[int]:
        return self.decision.retry_after


class SessionNotFoundError(NamesmithError):
    """No session with the given identifier exists for the caller"""

    def __init__(self, session_id: str):
        super().__init__(f"Generation session not found: {session_id}")
        self.session_id = session_id


class InvalidTransitionError(NamesmithError):
    """A status change was attempted that the session state machine forbids"""

    def __init__(self, session_id: str, current: str, target: str):
        super().__init__(
            f"Cannot move session {session_id} from '{current}' to '{target}'"
        )
        self.session_id = session_id
        self.current = current
        self.target = target


class InvalidDomainError(NamesmithError):
    """A domain is not a syntactically valid fully-qualified name"""

    def __init__(self, domain: str):
        super().__init__(f"Invalid domain: {domain}")
        self.domain = domain
