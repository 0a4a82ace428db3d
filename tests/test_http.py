import gzip

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from conftest import urlset
from w3c_batch.core.errors import FetchError
from w3c_batch.core.infra.http import HttpClient
from w3c_batch.core.sitemap import HttpSitemapFetcher


async def echo_headers(request):
    return web.json_response({"userAgent": request.headers.get("User-Agent")})


async def echo_body(request):
    body = await request.read()
    return web.json_response({
        "contentType": request.headers.get("Content-Type"),
        "length": len(body),
    })


async def sitemap(request):
    return web.Response(body=urlset("https://example.com/"), content_type="application/xml")


async def sitemap_gz(request):
    return web.Response(body=gzip.compress(urlset("https://example.com/gz").encode()))


async def missing(request):
    raise web.HTTPNotFound()


def make_server():
    app = web.Application()
    app.router.add_get("/headers", echo_headers)
    app.router.add_post("/body", echo_body)
    app.router.add_get("/sitemap.xml", sitemap)
    app.router.add_get("/sitemap.xml.gz", sitemap_gz)
    app.router.add_get("/missing", missing)
    return TestServer(app)


@pytest.mark.asyncio
async def test_default_and_per_request_headers():
    async with make_server() as server:
        async with HttpClient(default_headers={"User-Agent": "default/1.0"}) as http:
            assert await http.get_json(str(server.make_url("/headers"))) == {"userAgent": "default/1.0"}

            http.set_default_header("User-Agent", "changed/2.0")
            payload = await http.get_json(str(server.make_url("/headers")))
            assert payload["userAgent"] == "changed/2.0"

            payload = await http.get_json(
                str(server.make_url("/headers")), headers={"User-Agent": "once/3.0"}
            )
            assert payload["userAgent"] == "once/3.0"


@pytest.mark.asyncio
async def test_post_raw_body():
    async with make_server() as server:
        async with HttpClient() as http:
            payload = await http.post_json(
                str(server.make_url("/body")),
                b"<p>hi</p>",
                json=False,
                headers={"Content-Type": "text/html; charset=utf-8"},
            )

    assert payload == {"contentType": "text/html; charset=utf-8", "length": 9}


@pytest.mark.asyncio
async def test_error_status_raises():
    async with make_server() as server:
        async with HttpClient() as http:
            with pytest.raises(aiohttp.ClientResponseError) as info:
                await http.get_text(str(server.make_url("/missing")))

    assert info.value.status == 404


@pytest.mark.asyncio
async def test_sitemap_fetcher_over_http():
    async with make_server() as server:
        async with HttpClient() as http:
            fetcher = HttpSitemapFetcher(http)
            plain = await fetcher.fetch(str(server.make_url("/sitemap.xml")))
            zipped = await fetcher.fetch(str(server.make_url("/sitemap.xml.gz")))

            with pytest.raises(FetchError, match="404"):
                await fetcher.fetch(str(server.make_url("/missing")))

    assert "https://example.com/" in plain
    assert "https://example.com/gz" in zipped
