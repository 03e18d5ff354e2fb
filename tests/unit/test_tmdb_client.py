import unittest
from unittest.mock import AsyncMock, patch

import httpx

import support  # noqa: F401
from cinematch.core.config import settings
from cinematch.services import tmdb_client
from cinematch.services.tmdb_client import TMDBError

REAL_ASYNC_CLIENT = httpx.AsyncClient

VIDEOS = [
    {"site": "Vimeo", "type": "Trailer", "key": "vimeo1", "official": True},
    {"site": "YouTube", "type": "Teaser", "key": "teaser1", "official": True},
    {"site": "YouTube", "type": "Trailer", "key": "fan1", "official": False},
    {"site": "YouTube", "type": "Trailer", "key": "official1", "official": True},
]


def mock_transport(handler):
    """Route tmdb_client's AsyncClient through an in-process handler."""
    transport = httpx.MockTransport(handler)
    return patch.object(
        tmdb_client.httpx,
        "AsyncClient",
        side_effect=lambda **kwargs: REAL_ASYNC_CLIENT(transport=transport, **kwargs),
    )


class TestTrailerSelection(unittest.TestCase):
    def test_prefers_official_youtube_trailer(self):
        self.assertEqual(tmdb_client.pick_trailer(VIDEOS)["key"], "official1")

    def test_falls_back_to_first_youtube_trailer(self):
        videos = [v for v in VIDEOS if v["key"] != "official1"]
        self.assertEqual(tmdb_client.pick_trailer(videos)["key"], "fan1")

    def test_no_trailer(self):
        self.assertIsNone(tmdb_client.pick_trailer(VIDEOS[:2]))
        self.assertIsNone(tmdb_client.pick_trailer([]))


class TestImageUrls(unittest.TestCase):
    def test_poster_and_backdrop_urls(self):
        self.assertEqual(tmdb_client.get_poster_url("/abc.jpg"), f"{settings.tmdb_image_base_url}/w500/abc.jpg")
        self.assertEqual(tmdb_client.get_backdrop_url("/abc.jpg"), f"{settings.tmdb_image_base_url}/w1280/abc.jpg")
        self.assertIsNone(tmdb_client.get_poster_url(None))

    def test_unsupported_size(self):
        with self.assertRaises(ValueError):
            tmdb_client.get_poster_url("/abc.jpg", size="w1280")


class TestTmdbClient(unittest.IsolatedAsyncioTestCase):
    async def test_trailer_url(self):
        with patch.object(tmdb_client, "fetch_movie_videos", AsyncMock(return_value=VIDEOS)):
            self.assertEqual(await tmdb_client.get_youtube_trailer_url(550), "https://www.youtube.com/embed/official1")
            self.assertEqual(
                await tmdb_client.get_youtube_trailer_url(550, embed=False),
                "https://www.youtube.com/watch?v=official1",
            )

    async def test_trailer_url_is_none_on_failure(self):
        with patch.object(tmdb_client, "fetch_movie_videos", AsyncMock(side_effect=TMDBError("boom"))):
            self.assertIsNone(await tmdb_client.get_youtube_trailer_url(550))

    async def test_trailer_url_is_none_without_trailers(self):
        with patch.object(tmdb_client, "fetch_movie_videos", AsyncMock(return_value=[])):
            self.assertIsNone(await tmdb_client.get_youtube_trailer_url(550))

    async def test_get_sends_api_key_and_drops_empty_params(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"page": 1, "results": []})

        with mock_transport(handler):
            data = await tmdb_client.discover_movies(page=2, original_language="ko", with_genres=None)

        self.assertEqual(data["results"], [])
        self.assertTrue(seen["path"].endswith("/discover/movie"))
        self.assertEqual(seen["params"]["api_key"], "test-key")
        self.assertEqual(seen["params"]["with_original_language"], "ko")
        self.assertEqual(seen["params"]["page"], "2")
        self.assertNotIn("with_genres", seen["params"])

    async def test_videos_returns_results_list(self):
        def handler(request):
            return httpx.Response(200, json={"id": 550, "results": VIDEOS})

        with mock_transport(handler):
            self.assertEqual(await tmdb_client.fetch_movie_videos(550), VIDEOS)

    async def test_http_error_status_raises(self):
        def handler(request):
            return httpx.Response(404, json={"status_message": "not found"})

        with mock_transport(handler):
            with self.assertRaises(TMDBError) as ctx:
                await tmdb_client.fetch_movie_details(1)
        self.assertIn("404", str(ctx.exception))

    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with mock_transport(handler):
            with self.assertRaises(TMDBError):
                await tmdb_client.fetch_popular_movies()

    async def test_missing_api_key(self):
        with patch.object(settings, "tmdb_api_key", ""):
            with self.assertRaises(TMDBError):
                await tmdb_client.fetch_genres()

    async def test_invalid_trending_window(self):
        with self.assertRaises(ValueError):
            await tmdb_client.fetch_trending_movies("month")


if __name__ == "__main__":
    unittest.main()
