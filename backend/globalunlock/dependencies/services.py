"""
Service dependencies. Instances are created once per app in main.py and kept on app.state.
"""
from fastapi import Request

from ..services.change_feed import ChangeFeed
from ..services.mutation_service import MutationService


def get_change_feed(request: Request) -> ChangeFeed:
    return request.app.state.change_feed


def get_mutation_service(request: Request) -> MutationService:
    return request.app.state.mutation_service
