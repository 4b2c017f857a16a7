from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from catalog_ingest.adapters.http_client import RateLimitedClient
from catalog_ingest.adapters.musicbrainz_dump.archives import ArchiveMember, DumpArchive
from catalog_ingest.adapters.musicbrainz_dump.downloader import DumpDownloader
from catalog_ingest.config import HttpClientConfig, MusicBrainzDumpConfig
from catalog_ingest.domain.errors import DumpDateError, TooManyRedirectsError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable
    from pathlib import Path

BASE_URL = "https://dump.example/fullexport/"
DUMP_DATE = "20240101-001000"

type Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]

CORE = DumpArchive(name="mbdump.tar.bz2", members=(ArchiveMember("mbdump/artist"),))
DERIVED = DumpArchive(name="mbdump-derived.tar.bz2", members=(ArchiveMember("mbdump/tag"),))


def _downloader(
    dump_dir: Path,
    handler: Handler,
    *,
    archives: tuple[DumpArchive, ...] = (CORE,),
    dump_date: str | None = None,
) -> DumpDownloader:
    config = MusicBrainzDumpConfig(
        dump_dir=dump_dir,
        http=HttpClientConfig(name="musicbrainz-dump-test", base_url=BASE_URL),
        dump_date=dump_date,
    )

    def client_factory(http: HttpClientConfig) -> RateLimitedClient:
        return RateLimitedClient(http, transport=httpx.MockTransport(handler))

    return DumpDownloader(config=config, archives=archives, client_factory=client_factory)


def test_resolves_latest_and_downloads_archives(
    tmp_path: Path,
    archive_bytes: Callable[..., bytes],
) -> None:
    payloads = {
        CORE.name: archive_bytes({"mbdump/artist": b"1\tartist\n"}),
        DERIVED.name: archive_bytes({"mbdump/tag": b"1\trock\n"}),
    }
    requested: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        if request.url.path == "/fullexport/LATEST":
            return httpx.Response(200, text=f"{DUMP_DATE}\n")
        name = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, content=payloads[name])

    result = _downloader(tmp_path, handler, archives=(CORE, DERIVED)).download()

    assert result.dump_date == DUMP_DATE
    assert requested[0] == "/fullexport/LATEST"
    assert sorted(requested[1:]) == [
        f"/fullexport/{DUMP_DATE}/{DERIVED.name}",
        f"/fullexport/{DUMP_DATE}/{CORE.name}",
    ]
    assert (tmp_path / "artist").read_bytes() == b"1\tartist\n"
    assert (tmp_path / "tag").read_bytes() == b"1\trock\n"
    assert result.extracted == (tmp_path / "artist", tmp_path / "tag")


def test_configured_date_skips_latest_lookup(
    tmp_path: Path,
    archive_bytes: Callable[..., bytes],
) -> None:
    payload = archive_bytes({"mbdump/artist": b"1\n"})
    requested: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return httpx.Response(200, content=payload)

    _downloader(tmp_path, handler, dump_date="20230601-001500").download()

    assert requested == [f"/fullexport/20230601-001500/{CORE.name}"]


def test_existing_archive_is_not_downloaded(
    tmp_path: Path,
    archive_bytes: Callable[..., bytes],
) -> None:
    (tmp_path / CORE.name).write_bytes(archive_bytes({"mbdump/artist": b"local\n"}))
    requested: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return httpx.Response(200, text=DUMP_DATE)

    _downloader(tmp_path, handler).download()

    assert requested == ["/fullexport/LATEST"]
    assert (tmp_path / "artist").read_bytes() == b"local\n"


def test_follows_redirects_to_mirror(
    tmp_path: Path,
    archive_bytes: Callable[..., bytes],
) -> None:
    payload = archive_bytes({"mbdump/artist": b"mirrored\n"})
    hosts: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "dump.example":
            return httpx.Response(
                302,
                headers={"location": f"https://mirror.example/mb/{CORE.name}"},
            )
        return httpx.Response(200, content=payload)

    _downloader(tmp_path, handler, dump_date=DUMP_DATE).download()

    assert hosts == ["dump.example", "mirror.example"]
    assert (tmp_path / "artist").read_bytes() == b"mirrored\n"


def test_redirect_chain_is_bounded(tmp_path: Path) -> None:
    calls = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(302, headers={"location": f"/hop/{calls}"})

    with pytest.raises(TooManyRedirectsError, match=r"Too many redirects for mbdump\.tar\.bz2"):
        _downloader(tmp_path, handler, dump_date=DUMP_DATE).download()

    assert calls == 6
    assert not (tmp_path / CORE.name).exists()


def test_interrupted_transfer_is_not_promoted(tmp_path: Path) -> None:
    async def broken_body() -> AsyncIterator[bytes]:
        yield b"first chunk"
        raise httpx.ReadError("connection reset")

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=broken_body())

    with pytest.raises(httpx.ReadError):
        _downloader(tmp_path, handler, dump_date=DUMP_DATE).download()

    assert not (tmp_path / CORE.name).exists()
    assert (tmp_path / f"{CORE.name}.partial").exists()


def test_http_errors_propagate(tmp_path: Path) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with pytest.raises(httpx.HTTPStatusError):
        _downloader(tmp_path, handler, dump_date=DUMP_DATE).download()

    assert not (tmp_path / CORE.name).exists()
    assert not (tmp_path / f"{CORE.name}.partial").exists()


def test_streams_without_content_length(
    tmp_path: Path,
    archive_bytes: Callable[..., bytes],
) -> None:
    payload = archive_bytes({"mbdump/artist": b"chunked\n"})

    async def chunks() -> AsyncIterator[bytes]:
        yield payload[:10]
        yield payload[10:]

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=chunks())

    _downloader(tmp_path, handler, dump_date=DUMP_DATE).download()

    assert (tmp_path / CORE.name).read_bytes() == payload


def test_failures_of_several_archives_are_grouped(tmp_path: Path) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    with pytest.raises(BaseExceptionGroup) as exc:
        _downloader(tmp_path, handler, archives=(CORE, DERIVED), dump_date=DUMP_DATE).download()

    assert len(exc.value.exceptions) == 2


def test_empty_latest_pointer_is_rejected(tmp_path: Path) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="  \n")

    with pytest.raises(DumpDateError):
        _downloader(tmp_path, handler).download()
