from __future__ import annotations

import logging

from .stores import ProjectDirectory

logger = logging.getLogger(__name__)


class ProjectMemberResolver:
    """Best-effort project lookups used while creating tickets.

    Lookup failures never propagate: a missing recipient list or project id
    must not block ticket creation.
    """

    def __init__(self, directory: ProjectDirectory) -> None:
        self._directory = directory

    async def emails_for_project(self, project_name: str | None) -> list[str]:
        if not project_name:
            return []
        try:
            users = await self._directory.list_project_users(project_name)
        except Exception:
            logger.exception("Failed to fetch members of project %r", project_name)
            return []
        return [user.email for user in users if user.email]

    async def resolve_project_id(self, project_name: str | None) -> str:
        if not project_name:
            return ""
        try:
            project = await self._directory.find_project(project_name)
        except Exception:
            logger.warning("Project lookup for %r failed, leaving ticket unlinked", project_name, exc_info=True)
            return ""
        if project is None:
            return ""
        return str(project.id)
