from fastapi import APIRouter, Depends

from ideaforge.api.deps import get_catalog
from ideaforge.api.models import ModuleListResponse
from ideaforge.generation.catalog import ModuleCatalog
from ideaforge.services import sessions as session_service

router = APIRouter()


@router.get("", response_model=ModuleListResponse)
async def list_modules(catalog: ModuleCatalog = Depends(get_catalog)) -> ModuleListResponse:  # noqa: B008
  """List generated modules in generation order."""
  return session_service.list_modules(catalog)
