"""
The orchestrator that turns a Plex Web page address into part downloads.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol

from plex_dl.api.client import PlexAPIClient
from plex_dl.models.stats import DownloadStats
from plex_dl.utils.formatting import mask_token
from plex_dl.utils.page_context import extract_content_id, extract_server_instance_id

log = logging.getLogger(__name__)


class FailureReason(str, Enum):
    """Why a run stopped before triggering downloads."""

    MISSING_TOKEN = "missing_token"
    MISSING_SERVER_ID = "missing_server_id"
    MISSING_SERVER_ACCESS = "missing_server_access"
    MISSING_CONTENT_ID = "missing_content_id"
    NO_PARTS = "no_parts"
    UNEXPECTED = "unexpected"


@dataclass
class PipelineResult:
    reason: Optional[FailureReason] = None
    parts: List[str] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.reason is None


class PartTrigger(Protocol):
    async def trigger(self, base_uri: str, part_key: str, token: str) -> None: ...


class DownloadPipeline:
    """
    Runs the lookup chain for one page address, once per activation.

    Steps, each aborting with its own reason:
    account token -> server id -> server access -> content id -> parts,
    then one trigger per part in document order.
    """

    def __init__(
        self,
        api_client: PlexAPIClient,
        trigger: PartTrigger,
        stats: DownloadStats | None = None,
    ):
        self.api_client = api_client
        self.trigger = trigger
        self.stats = stats or DownloadStats()

    async def run(self, page_url: str, account_token: Optional[str]) -> PipelineResult:
        try:
            return await self._run(page_url, account_token)
        except Exception as e:
            log.error(f"[red]Download failed: {e}[/red]")
            log.debug("Full traceback:", exc_info=True)
            return PipelineResult(reason=FailureReason.UNEXPECTED, error=e)

    async def _run(self, page_url: str, account_token: Optional[str]) -> PipelineResult:
        if not account_token:
            return PipelineResult(reason=FailureReason.MISSING_TOKEN)

        server_id = extract_server_instance_id(page_url)
        if not server_id:
            return PipelineResult(reason=FailureReason.MISSING_SERVER_ID)

        log.info(
            f"Resolving server [cyan]{server_id[:8]}…[/cyan] "
            f"(token {mask_token(account_token)})"
        )
        access = await self.api_client.resolve_server_access(account_token, server_id)
        if not access.is_complete:
            return PipelineResult(reason=FailureReason.MISSING_SERVER_ACCESS)

        content_id = extract_content_id(page_url)
        if not content_id:
            return PipelineResult(reason=FailureReason.MISSING_CONTENT_ID)

        parts = await self.api_client.resolve_file_parts(
            access.base_uri, access.access_token, content_id
        )
        if not parts:
            return PipelineResult(reason=FailureReason.NO_PARTS)

        self.stats.parts_resolved += len(parts)
        log.info(f"Found [bold]{len(parts)}[/bold] part(s) for item {content_id}")

        for part_key in parts:
            try:
                await self.trigger.trigger(
                    access.base_uri, part_key, access.access_token
                )
            except Exception as e:
                self.stats.parts_failed += 1
                log.warning(f"[yellow]Part {part_key} failed: {e}[/yellow]")
                log.debug("Full traceback:", exc_info=True)

        return PipelineResult(parts=parts)
