"""
HTTP routes for the content service API.
"""

from fastapi import APIRouter

from pulpit.routes import (
    admin,
    auth,
    content,
    invitations,
    library,
    media,
    notifications,
    reminders,
    search,
    sharing,
    system,
    taxonomy,
    users,
)

router = APIRouter()
for module in (
    system,
    auth,
    users,
    content,
    taxonomy,
    library,
    search,
    notifications,
    reminders,
    invitations,
    sharing,
    admin,
    media,
):
    router.include_router(module.router)
