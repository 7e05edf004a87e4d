"""Backend inspection endpoints: models, credential validation, active config."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from deps import get_service
from service import PromptService

logger = logging.getLogger(__name__)

router = APIRouter()


class CredentialBody(BaseModel):  # pylint: disable=too-few-public-methods
    """Credential validation request body."""

    api_key: str


@router.get("/v1/models")
async def list_models(service: PromptService = Depends(get_service)) -> Dict[str, Any]:
    """Return the model identifiers offered by the active backend."""
    models = await service.list_models()
    logger.info("list_models count=%s", len(models))
    return {"models": models}


@router.post("/v1/credentials/validate")
async def validate_credential(
    body: CredentialBody, service: PromptService = Depends(get_service)
) -> Dict[str, Any]:
    """Check whether an API key is accepted by the custom backend."""
    return {"valid": await service.validate_credential(body.api_key)}


@router.get("/v1/backend")
async def active_backend(service: PromptService = Depends(get_service)) -> Dict[str, Any]:
    """Describe the active backend without exposing its credential."""
    config = service.current_config()
    return {
        "kind": config.kind.value,
        "endpoint": config.endpoint,
        "model": config.model_id,
        "timeout": config.timeout,
        "configured": config.has_credential,
    }
