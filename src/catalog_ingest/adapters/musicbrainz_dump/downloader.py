"""Acquire the MusicBrainz full-export archives."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from catalog_ingest.adapters.http_client import RateLimitedClient
from catalog_ingest.config.musicbrainz import LATEST_DUMP_DATE
from catalog_ingest.domain.errors import DumpDateError, TooManyRedirectsError

from .archives import DUMP_ARCHIVES
from .extractor import extract_members

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    import httpx

    from catalog_ingest.config.http_client import HttpClientConfig
    from catalog_ingest.config.musicbrainz import MusicBrainzDumpConfig

    from .archives import DumpArchive

log = getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 1 << 20
PROGRESS_STEP_PERCENT = 5.0


@dataclass(frozen=True, slots=True)
class DumpDownloadResult:
    dump_date: str
    archives: tuple[Path, ...]
    extracted: tuple[Path, ...]


class DumpDownloader:
    """Resolve the dated snapshot, download its archives and extract the tables."""

    def __init__(
        self,
        *,
        config: MusicBrainzDumpConfig,
        archives: Sequence[DumpArchive] = DUMP_ARCHIVES,
        client_factory: Callable[[HttpClientConfig], RateLimitedClient] | None = None,
    ) -> None:
        self._config = config
        self._archives = tuple(archives)
        self._client_factory = client_factory or RateLimitedClient

    @property
    def dump_dir(self) -> Path:
        return self._config.dump_dir

    def download(self) -> DumpDownloadResult:
        """Download every archive concurrently, then extract their members."""

        self.dump_dir.mkdir(parents=True, exist_ok=True)
        dump_date, archive_paths = asyncio.run(self._download_async())

        extracted: list[Path] = []
        for archive in self._archives:
            extracted.extend(extract_members(archive, self.dump_dir))
        log.info("All downloads and extractions complete")
        return DumpDownloadResult(
            dump_date=dump_date,
            archives=tuple(archive_paths),
            extracted=tuple(extracted),
        )

    async def _download_async(self) -> tuple[str, list[Path]]:
        async with self._client_factory(self._config.http) as client:
            dump_date = await self.resolve_dump_date(client)
            log.info("Using dump date: %s", dump_date)
            results = await asyncio.gather(
                *(self.download_archive(client, dump_date, archive) for archive in self._archives),
                return_exceptions=True,
            )

        errors = [result for result in results if isinstance(result, BaseException)]
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise BaseExceptionGroup(f"Failed to download {len(errors)} archives", errors)
        paths = [result for result in results if not isinstance(result, BaseException)]
        return dump_date, paths

    async def resolve_dump_date(self, client: RateLimitedClient) -> str:
        configured = (self._config.dump_date or "").strip()
        if configured and configured.lower() != LATEST_DUMP_DATE:
            return configured

        log.info("Resolving latest dump date")
        response = await client.get("LATEST")
        response.raise_for_status()
        dump_date = response.text.strip()
        if not dump_date:
            raise DumpDateError("LATEST pointer of the full export is empty")
        log.info("Latest dump: %s", dump_date)
        return dump_date

    async def download_archive(
        self,
        client: RateLimitedClient,
        dump_date: str,
        archive: DumpArchive,
    ) -> Path:
        destination = self.dump_dir / archive.name
        if destination.exists():
            log.info("%s already exists, skipping download", archive.name)
            return destination

        partial = destination.with_name(f"{destination.name}.partial")
        url: str = f"{dump_date}/{archive.name}"
        log.info("Downloading %s", url)

        for _ in range(self._config.max_redirects + 1):
            async with client.stream("GET", url, follow_redirects=False) as response:
                if response.is_redirect:
                    url = str(response.url.join(response.headers["location"]))
                    log.info("Following redirect to %s", url)
                    continue
                response.raise_for_status()
                await _write_stream(response, partial, archive.name)
            partial.replace(destination)
            log.info("%s download complete", archive.name)
            return destination

        raise TooManyRedirectsError(archive.name)


async def _write_stream(response: httpx.Response, partial: Path, archive_name: str) -> None:
    content_length = response.headers.get("content-length")
    total = int(content_length) if content_length and content_length.isdigit() else None
    downloaded = 0
    last_logged = 0.0

    handle = await asyncio.to_thread(partial.open, "wb")
    try:
        async for chunk in response.aiter_bytes(chunk_size=DOWNLOAD_CHUNK_SIZE):
            await asyncio.to_thread(handle.write, chunk)
            downloaded += len(chunk)
            if not total:
                continue
            percent = downloaded * 100.0 / total
            if percent - last_logged >= PROGRESS_STEP_PERCENT:
                log.info(
                    "%s: %.1f%% (%.1f MB)",
                    archive_name,
                    percent,
                    downloaded / 1_048_576,
                )
                last_logged = percent
    finally:
        await asyncio.to_thread(handle.close)
