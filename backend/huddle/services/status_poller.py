"""
Client-side status polling for meeting processing.

Reads GET /meetings/{id}/status until the meeting reaches 'processed' or
'failed'. Running out of attempts raises PollingTimeoutError, which is not a
pipeline failure: the run may still be in progress.
"""

import asyncio
import logging
from typing import Callable, Optional

import httpx

from ..core import config
from ..core.errors import MeetingNotFoundError, PollingTimeoutError
from ..schemas.meeting import TERMINAL_STATUSES, MeetingStatus

logger = logging.getLogger(__name__)


class MeetingStatusPoller:
    def __init__(
        self,
        base_url: str,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.interval = config.STATUS_POLL_INTERVAL_SECONDS if interval is None else interval
        self.max_attempts = max_attempts or config.STATUS_POLL_MAX_ATTEMPTS
        self._client = client
        self.timeout = timeout

    async def get_status(self, meeting_id: str, client: httpx.AsyncClient) -> MeetingStatus:
        response = await client.get(f"{self.base_url}/meetings/{meeting_id}/status")
        if response.status_code == 404:
            raise MeetingNotFoundError("Meeting not found")
        response.raise_for_status()
        return MeetingStatus(response.json()["status"])

    async def wait_for_terminal(
        self,
        meeting_id: str,
        on_status_change: Optional[Callable[[str], None]] = None,
    ) -> str:
        """Poll until processed/failed and return that status."""
        if self._client is not None:
            return await self._poll(meeting_id, self._client, on_status_change)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._poll(meeting_id, client, on_status_change)

    async def _poll(
        self,
        meeting_id: str,
        client: httpx.AsyncClient,
        on_status_change: Optional[Callable[[str], None]],
    ) -> str:
        for attempt in range(1, self.max_attempts + 1):
            status = await self.get_status(meeting_id, client)
            if on_status_change:
                on_status_change(status.value)

            if status in TERMINAL_STATUSES:
                logger.info(f"Meeting {meeting_id} reached {status.value} after {attempt} checks")
                return status.value

            if attempt < self.max_attempts:
                await asyncio.sleep(self.interval)

        raise PollingTimeoutError(
            "Polling timeout: Meeting processing took too long. "
            "Please check the meeting details page or try reprocessing."
        )
