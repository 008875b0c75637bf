from __future__ import annotations

from ..index_manager import IndexManager
from ...domain.models import IndexStatus


class IndexStatusUseCase:
    """Use-case: report item count and collection name."""

    def __init__(self, manager: IndexManager) -> None:
        self._manager = manager

    async def execute(self) -> IndexStatus:
        return await self._manager.get_status()
