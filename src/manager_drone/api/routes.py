"""
HTTP routes.

Handlers stay thin: look the service up through the Dispatcher, unwrap the
result, and let the ``DroneError`` handler map failures to status codes.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request

from ..errors import AuthenticationError
from ..registry import Dispatcher
from ..types import ActionRequest

router = APIRouter()


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


async def require_auth(request: Request) -> dict[str, Any]:
    result = await request.app.state.auth_adapter.authenticate(request)
    if not result.ok:
        raise AuthenticationError(result.reason or "Unauthorized")
    request.state.claims = result.claims
    return result.claims


DispatcherDep = Annotated[Dispatcher, Depends(get_dispatcher)]

services = APIRouter(prefix="/services", dependencies=[Depends(require_auth)])


@router.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


@services.get("")
async def list_services(dispatcher: DispatcherDep) -> list[dict[str, str]]:
    return dispatcher.list_services()


@services.get("/{service_id}/status")
async def service_status(service_id: str, dispatcher: DispatcherDep) -> dict[str, Any]:
    result = await dispatcher.status(service_id)
    return result.unwrap().to_dict()


@services.post("/{service_id}/restart")
async def restart_service(service_id: str, dispatcher: DispatcherDep) -> dict[str, Any]:
    result = await dispatcher.restart(service_id)
    return result.unwrap().to_dict()


@services.post("/{service_id}/action/{name}")
async def run_action(
    service_id: str,
    name: str,
    dispatcher: DispatcherDep,
    payload: Annotated[Any, Body()] = None,
) -> Any:
    result = await dispatcher.submit(service_id, ActionRequest(name, payload))
    return result.unwrap()


router.include_router(services)

__all__ = ["router", "require_auth", "get_dispatcher"]
