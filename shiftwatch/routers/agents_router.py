"""Agents API: manage the roster of tracked agents."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from shiftwatch.db import get_db
from shiftwatch.schemas.agent import AgentCreate, AgentRead, AgentUpdate
from shiftwatch.services.agent_service import AgentService

router = APIRouter(
    prefix="/agents",
    tags=["agents"],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=List[AgentRead])
def list_agents(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
) -> List[AgentRead]:
    """List active agents."""
    return AgentService(db).get_active_agents(skip=skip, limit=limit)


@router.post("", response_model=AgentRead, status_code=201)
def create_agent(
    data: AgentCreate,
    db: Session = Depends(get_db),
) -> AgentRead:
    """Create a new agent."""
    svc = AgentService(db)
    if svc.get_agent_by_email(data.email) is not None:
        raise HTTPException(status_code=400, detail="Agent with this email already exists")
    return svc.create_agent(data)


@router.get("/{agent_id}", response_model=AgentRead)
def get_agent(
    agent_id: UUID,
    db: Session = Depends(get_db),
) -> AgentRead:
    """Get an agent by ID."""
    agent = AgentService(db).get_agent(agent_id)
    if agent is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent


@router.patch("/{agent_id}", response_model=AgentRead)
def update_agent(
    agent_id: UUID,
    data: AgentUpdate,
    db: Session = Depends(get_db),
) -> AgentRead:
    """Update an agent."""
    svc = AgentService(db)
    if data.email is not None:
        existing = svc.get_agent_by_email(data.email)
        if existing is not None and existing.id != agent_id:
            raise HTTPException(
                status_code=400, detail="Agent with this email already exists"
            )
    agent = svc.update_agent(agent_id, data)
    if agent is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent


@router.delete("/{agent_id}", status_code=204)
def delete_agent(
    agent_id: UUID,
    db: Session = Depends(get_db),
) -> None:
    """Soft delete an agent: it stays on record but is no longer tracked."""
    if AgentService(db).deactivate_agent(agent_id) is None:
        raise HTTPException(status_code=404, detail="Agent not found")
