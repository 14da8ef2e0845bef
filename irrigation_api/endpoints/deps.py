"""Dependencias compartidas de los endpoints."""

from fastapi import Request

from ..core.service import MonitorService


def get_service(request: Request) -> MonitorService:
    return request.app.state.service
