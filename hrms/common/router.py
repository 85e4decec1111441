"""Route factory for the action-style CRUD endpoints.

``register_crud_routes`` wires, for one resource::

    POST  /<resource>/create   → 201, created row
    PUT   /<resource>/update   → {id, ...partial}
    POST  /<resource>/list     → page of rows + page_info
    POST  /<resource>/one      → {id, include}
    PATCH /<resource>/delete   → {id}, soft delete

Each route checks the caller's permission for ``<resource>/<action>`` and
resolves the organisation the call operates on.
"""

from typing import Optional, Sequence

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import Principal, require_permission, resolve_organisation
from hrms.common.crud import CrudService
from hrms.common.pagination import DeleteRequest, ListRequest, OneRequest
from hrms.common.responses import envelope
from hrms.database import get_db

CRUD_ACTIONS = ("create", "update", "list", "one", "delete")


def register_crud_routes(
    router: APIRouter,
    *,
    resource: str,
    service: type[CrudService],
    create_schema=None,
    update_schema=None,
    list_schema: type[ListRequest] = ListRequest,
    actions: Sequence[str] = CRUD_ACTIONS,
    paths: Optional[dict[str, str]] = None,
    delete_methods: Sequence[str] = ("PATCH",),
) -> None:
    """Attach the CRUD action routes for *resource* to *router*."""
    route_paths = {action: f"/{resource}/{action}" for action in CRUD_ACTIONS}
    route_paths.update(paths or {})
    label = service.entity_name

    if "create" in actions:
        async def create_item(
            body: create_schema,
            principal: Principal = Depends(require_permission(resource, "create")),
            db: AsyncSession = Depends(get_db),
        ):
            org_id = await resolve_organisation(db, principal, body.organisation_id)
            obj = await service.create(
                db, org_id, principal, body.model_dump(exclude={"organisation_id"}),
            )
            return envelope(service.serialize(obj), f"{label} created successfully.")

        router.add_api_route(
            route_paths["create"], create_item, methods=["POST"], status_code=201,
            name=f"{resource}_create", summary=f"Create {label}",
        )

    if "update" in actions:
        async def update_item(
            body: update_schema,
            principal: Principal = Depends(require_permission(resource, "update")),
            db: AsyncSession = Depends(get_db),
        ):
            org_id = await resolve_organisation(db, principal, body.organisation_id)
            changes = body.model_dump(exclude_unset=True, exclude={"id", "organisation_id"})
            obj = await service.update(db, org_id, principal, body.id, changes)
            return envelope(service.serialize(obj), f"{label} updated successfully.")

        router.add_api_route(
            route_paths["update"], update_item, methods=["PUT"],
            name=f"{resource}_update", summary=f"Update {label}",
        )

    if "list" in actions:
        async def list_items(
            body: list_schema,
            principal: Principal = Depends(require_permission(resource, "list")),
            db: AsyncSession = Depends(get_db),
        ):
            org_id = await resolve_organisation(db, principal, body.organisation_id)
            rows, page_info = await service.list_rows(db, org_id, principal, body)
            return envelope(
                [service.serialize(row, body.include) for row in rows],
                f"{label} list fetched successfully.",
                page_info,
            )

        router.add_api_route(
            route_paths["list"], list_items, methods=["POST"],
            name=f"{resource}_list", summary=f"List {label}",
        )

    if "one" in actions:
        async def get_item(
            body: OneRequest,
            principal: Principal = Depends(require_permission(resource, "one")),
            db: AsyncSession = Depends(get_db),
        ):
            org_id = await resolve_organisation(db, principal, body.organisation_id)
            obj = await service.get(db, org_id, principal, body.id, body.include)
            return envelope(service.serialize(obj, body.include), f"{label} fetched successfully.")

        router.add_api_route(
            route_paths["one"], get_item, methods=["POST"],
            name=f"{resource}_one", summary=f"Get {label}",
        )

    if "delete" in actions:
        async def delete_item(
            body: DeleteRequest,
            principal: Principal = Depends(require_permission(resource, "delete")),
            db: AsyncSession = Depends(get_db),
        ):
            org_id = await resolve_organisation(db, principal, body.organisation_id)
            obj = await service.soft_delete(db, org_id, principal, body.id)
            return envelope({"id": str(obj.id)}, f"{label} deleted successfully.")

        router.add_api_route(
            route_paths["delete"], delete_item, methods=list(delete_methods),
            name=f"{resource}_delete", summary=f"Delete {label}",
        )
