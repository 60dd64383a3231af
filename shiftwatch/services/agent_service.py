"""
Agent records and external identity resolution.

AgentService holds the administrative operations. AgentDirectory resolves a
chat-platform user id to an active agent, binding the id onto the agent the
first time it is seen (looked up by email through the directory service).
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from shiftwatch.adapters.base import BaseDirectoryClient, DirectoryProfile
from shiftwatch.exceptions import DirectoryLookupError
from shiftwatch.infra.logging_config import get_logger
from shiftwatch.models.agent import Agent
from shiftwatch.models.mixins import utcnow
from shiftwatch.schemas.agent import AgentCreate, AgentUpdate

logger = get_logger("agent_directory")


class AgentService:
    """Create, read, update and deactivate agents. Agents are never deleted."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_agent(self, data: AgentCreate) -> Agent:
        agent = Agent(
            name=data.name,
            email=data.email,
            default_shift=data.default_shift.value if data.default_shift else None,
            is_active=True,
        )
        self.db.add(agent)
        self.db.commit()
        self.db.refresh(agent)
        return agent

    def get_agent(self, agent_id: UUID) -> Optional[Agent]:
        return self.db.query(Agent).filter(Agent.id == agent_id).first()

    def get_active_agent_by_external_id(self, external_user_id: str) -> Optional[Agent]:
        return (
            self.db.query(Agent)
            .filter(
                Agent.external_user_id == external_user_id,
                Agent.is_active.is_(True),
            )
            .first()
        )

    def get_agent_by_email(self, email: str) -> Optional[Agent]:
        """Any agent with this email, active or not (emails are unique)."""
        return self.db.query(Agent).filter(Agent.email == email.strip().lower()).first()

    def get_active_agent_by_email(self, email: str) -> Optional[Agent]:
        return (
            self.db.query(Agent)
            .filter(
                Agent.email == email.strip().lower(),
                Agent.is_active.is_(True),
            )
            .first()
        )

    def get_active_agents(self, skip: int = 0, limit: int = 100) -> List[Agent]:
        return (
            self.db.query(Agent)
            .filter(Agent.is_active.is_(True))
            .order_by(Agent.name.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def update_agent(self, agent_id: UUID, data: AgentUpdate) -> Optional[Agent]:
        agent = self.get_agent(agent_id)
        if agent is None:
            return None
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field != "default_shift":
                continue  # name, email and is_active are not nullable
            if field == "default_shift" and value is not None:
                value = value.value
            setattr(agent, field, value)
        self.db.commit()
        self.db.refresh(agent)
        return agent

    def deactivate_agent(self, agent_id: UUID) -> Optional[Agent]:
        agent = self.get_agent(agent_id)
        if agent is None:
            return None
        agent.is_active = False
        self.db.commit()
        self.db.refresh(agent)
        return agent

    def bind_external_id(
        self,
        agent: Agent,
        external_user_id: str,
        username: Optional[str] = None,
    ) -> bool:
        """
        Bind a chat-platform user id onto an agent.

        Idempotent: binding the id the agent already has is a no-op. Never
        overwrites a different id. Returns True if the agent ends up bound to
        ``external_user_id``.
        """
        if agent.external_user_id == external_user_id:
            return True
        self.db.execute(
            update(Agent)
            .where(
                Agent.id == agent.id,
                or_(
                    Agent.external_user_id.is_(None),
                    Agent.external_user_id == external_user_id,
                ),
            )
            .values(
                external_user_id=external_user_id,
                external_username=username,
                updated_at=utcnow(),
            )
        )
        self.db.commit()
        self.db.refresh(agent)
        return agent.external_user_id == external_user_id


class AgentDirectory:
    """Resolve external user ids to active agents, binding lazily."""

    def __init__(
        self,
        db: Session,
        directory_client: Optional[BaseDirectoryClient] = None,
        agent_service: Optional[AgentService] = None,
    ) -> None:
        self._agent_svc = agent_service or AgentService(db)
        self._directory_client = directory_client

    def resolve(self, external_user_id: str) -> Optional[Agent]:
        """Return the tracked agent for this user id, or None if untracked."""
        return self.resolve_or_bind(external_user_id)

    def resolve_or_bind(self, external_user_id: str) -> Optional[Agent]:
        """
        Fast path by bound id; otherwise look the user up in the directory,
        find the agent by email and bind the id onto it.
        """
        agent = self._agent_svc.get_active_agent_by_external_id(external_user_id)
        if agent is not None:
            return agent

        profile = self._lookup_profile(external_user_id)
        if profile is None or not profile.email:
            return None

        agent = self._agent_svc.get_active_agent_by_email(profile.email)
        if agent is None:
            return None

        if not self._agent_svc.bind_external_id(
            agent, external_user_id, username=profile.username
        ):
            logger.warning(
                "Agent already bound to a different external id",
                extra={
                    "context": {
                        "agent_id": str(agent.id),
                        "bound_external_id": agent.external_user_id,
                        "external_user_id": external_user_id,
                    }
                },
            )
            return None

        logger.info(
            "Bound agent %s to external id %s",
            agent.name,
            external_user_id,
            extra={"context": {"agent_id": str(agent.id)}},
        )
        return agent

    def _lookup_profile(self, external_user_id: str) -> Optional[DirectoryProfile]:
        if self._directory_client is None:
            return None
        try:
            return self._directory_client.lookup_user(external_user_id)
        except DirectoryLookupError as e:
            logger.warning(
                "Directory lookup failed: %s",
                e,
                extra={"context": {"external_user_id": external_user_id}},
            )
            return None
