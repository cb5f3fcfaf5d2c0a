"""
REST routes shared by every lifecycle-managed content kind.

`build_router` is called once per kind; the owner-audience routes need a
signed-in user with a required role, the `/public` ones need nothing.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from coursebase.api.deps import get_catalog, get_current_user
from coursebase.api.schemas import PageResponse, SuccessResponse, WireModel, to_page_response
from coursebase.core.catalog import Catalog
from coursebase.core.lifecycle import LifecycleEngine
from coursebase.domain.entities import User


def split_ids(raw: list[str]) -> list[str]:
    """Accept `?ids=a&ids=b` as well as `?ids=a,b`."""
    return [part.strip() for value in raw for part in value.split(",") if part.strip()]


def build_router(kind_name: str, out_model: type[WireModel]) -> APIRouter:
    router = APIRouter()
    page_model = PageResponse[out_model]  # type: ignore[valid-type]

    def get_engine(catalog: Catalog = Depends(get_catalog)) -> LifecycleEngine:
        return catalog.engine(kind_name)

    @router.post("", response_model=out_model, status_code=201)
    async def create_entity(
        payload: dict[str, Any] | None = Body(None),
        current_user: User = Depends(get_current_user),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        return out_model.model_validate(await engine.create(current_user, payload))

    @router.get("", response_model=page_model)
    async def list_own(
        page: int | None = Query(None),
        limit: int | None = Query(None),
        parent: str | None = Query(None),
        current_user: User = Depends(get_current_user),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        result = await engine.list(
            current_user, {"page": page, "limit": limit}, visibility="owner", parent_id=parent
        )
        return to_page_response(result, out_model)

    @router.get("/public", response_model=page_model)
    async def list_public(
        page: int | None = Query(None),
        limit: int | None = Query(None),
        parent: str | None = Query(None),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        result = await engine.list(
            None, {"page": page, "limit": limit}, visibility="public", parent_id=parent
        )
        return to_page_response(result, out_model)

    @router.get("/batch", response_model=list[out_model])  # type: ignore[valid-type]
    async def list_by_ids(
        ids: list[str] = Query([]),
        current_user: User = Depends(get_current_user),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        found = await engine.list_by_ids(current_user, split_ids(ids))
        return [out_model.model_validate(entity) for entity in found]

    @router.get("/slug/{slug}", response_model=out_model)
    async def get_by_slug(
        slug: str,
        current_user: User = Depends(get_current_user),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        return out_model.model_validate(await engine.get_by_slug(current_user, slug, "owner"))

    @router.get("/slug/{slug}/public", response_model=out_model)
    async def get_public_by_slug(slug: str, engine: LifecycleEngine = Depends(get_engine)) -> Any:
        return out_model.model_validate(await engine.get_by_slug(None, slug, "public"))

    @router.get("/{entity_id}", response_model=out_model)
    async def get_by_id(
        entity_id: str,
        current_user: User = Depends(get_current_user),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        return out_model.model_validate(await engine.get_by_id(current_user, entity_id, "owner"))

    @router.get("/{entity_id}/public", response_model=out_model)
    async def get_public_by_id(entity_id: str, engine: LifecycleEngine = Depends(get_engine)) -> Any:
        return out_model.model_validate(await engine.get_by_id(None, entity_id, "public"))

    @router.patch("/{entity_id}", response_model=out_model)
    async def update_entity(
        entity_id: str,
        payload: dict[str, Any] | None = Body(None),
        current_user: User = Depends(get_current_user),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        return out_model.model_validate(await engine.update(current_user, entity_id, payload))

    @router.patch("/{entity_id}/public", response_model=out_model)
    async def publish_entity(
        entity_id: str,
        current_user: User = Depends(get_current_user),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        return out_model.model_validate(await engine.publish(current_user, entity_id))

    @router.patch("/{entity_id}/private", response_model=out_model)
    async def unpublish_entity(
        entity_id: str,
        current_user: User = Depends(get_current_user),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        return out_model.model_validate(await engine.unpublish(current_user, entity_id))

    @router.delete("/{entity_id}", response_model=SuccessResponse)
    async def delete_entity(
        entity_id: str,
        current_user: User = Depends(get_current_user),
        engine: LifecycleEngine = Depends(get_engine),
    ) -> Any:
        return SuccessResponse(success=await engine.remove(current_user, entity_id))

    return router
