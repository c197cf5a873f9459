from dataclasses import dataclass, replace


@dataclass(frozen=True)
class RequestContext:
    """Who is acting and which analytics session they belong to, passed explicitly to services."""

    actor_id: str | None = None
    analytics_session_id: str | None = None
    ip: str | None = None
    user_agent: str | None = None

    def with_session(self, session_id: str) -> 'RequestContext':
        return replace(self, analytics_session_id=session_id)


SYSTEM_CONTEXT = RequestContext(actor_id='system')
