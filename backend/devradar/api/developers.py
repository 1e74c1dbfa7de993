"""REST API surface for developer registration and lookup."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status

from devradar import container
from devradar.domain.developers.registry import DeveloperRegistry
from devradar.domain.developers.schemas import (
    DeveloperIn,
    DeveloperListResponse,
    DeveloperOut,
    DeveloperUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/developers", response_model=DeveloperOut)
async def register_developer(
    payload: DeveloperIn,
    response: Response,
    registry: DeveloperRegistry = Depends(container.get_registry),
) -> DeveloperOut:
    """Create or wholesale-replace a developer record."""
    record = payload.to_record()
    existed = record.id in registry
    committed = await registry.register(record)
    response.status_code = status.HTTP_200_OK if existed else status.HTTP_201_CREATED
    logger.info("developer registered id=%s created=%s", committed.id, not existed)
    return DeveloperOut.from_record(committed)


@router.get("/developers", response_model=DeveloperListResponse)
async def list_developers(registry: DeveloperRegistry = Depends(container.get_registry)) -> DeveloperListResponse:
    return DeveloperListResponse(developers=[DeveloperOut.from_record(record) for record in registry.all()])


@router.get("/developers/{developer_id}", response_model=DeveloperOut)
async def get_developer(
    developer_id: str,
    registry: DeveloperRegistry = Depends(container.get_registry),
) -> DeveloperOut:
    return DeveloperOut.from_record(registry.get(developer_id))


@router.put("/developers/{developer_id}", response_model=DeveloperOut)
async def update_developer(
    developer_id: str,
    payload: DeveloperUpdate,
    registry: DeveloperRegistry = Depends(container.get_registry),
) -> DeveloperOut:
    """Move a developer or change tags/profile; omitted fields are kept."""
    committed = await registry.update(developer_id, **payload.changes())
    return DeveloperOut.from_record(committed)


@router.delete("/developers/{developer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unregister_developer(
    developer_id: str,
    registry: DeveloperRegistry = Depends(container.get_registry),
) -> Response:
    removed = await registry.unregister(developer_id)
    if removed is not None:
        logger.info("developer unregistered id=%s", developer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
