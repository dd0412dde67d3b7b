from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from fieldservice.chat.service import ChatService
from fieldservice.service_requests.dispatch import DispatchService
from fieldservice.service_requests.intake import IntakeService


def _from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{label} is not configured")
    return service


async def get_intake_service(request: Request) -> IntakeService:
    return _from_state(request, "intake_service", "Intake service")


async def get_dispatch_service(request: Request) -> DispatchService:
    return _from_state(request, "dispatch_service", "Dispatch service")


async def get_chat_service(request: Request) -> ChatService:
    return _from_state(request, "chat_service", "Chat service")


IntakeServiceDep = Annotated[IntakeService, Depends(get_intake_service)]
DispatchServiceDep = Annotated[DispatchService, Depends(get_dispatch_service)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
