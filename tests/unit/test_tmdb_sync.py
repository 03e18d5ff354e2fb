import unittest
from unittest.mock import AsyncMock, patch

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

import support
from cinematch import crud
from cinematch.core.config import settings
from cinematch.core.database import SessionLocal
from cinematch.models import Movie
from cinematch.services import tmdb_sync
from cinematch.services.tmdb_client import TMDBError

CLIENT = "cinematch.services.tmdb_client"


def details_mock():
    return AsyncMock(side_effect=lambda tmdb_id: support.tmdb_details(tmdb_id))


class TestTmdbSync(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        support.reset_db()
        self.db = SessionLocal()

    def tearDown(self):
        self.db.close()

    def movie_count(self):
        return self.db.scalar(select(func.count()).select_from(Movie))

    async def test_sync_inserts_missing_movies_in_listing_order(self):
        listing = AsyncMock(return_value=support.tmdb_listing([3, 1, 2], total_results=420))
        details = details_mock()
        with patch(f"{CLIENT}.fetch_popular_movies", listing), patch(f"{CLIENT}.fetch_movie_details", details):
            movies, total = await tmdb_sync.sync_category(self.db, "popular")

        self.assertEqual([m.tmdb_id for m in movies], [3, 1, 2])
        self.assertEqual(total, 420)
        self.assertEqual(details.await_count, 3)
        self.assertEqual(self.movie_count(), 3)
        listing.assert_awaited_once_with(1)

    async def test_resync_fetches_no_details_and_inserts_nothing(self):
        listing = AsyncMock(return_value=support.tmdb_listing([1, 2]))
        with patch(f"{CLIENT}.fetch_popular_movies", listing), patch(f"{CLIENT}.fetch_movie_details", details_mock()):
            await tmdb_sync.sync_category(self.db, "popular")

        details = details_mock()
        with patch(f"{CLIENT}.fetch_popular_movies", listing), patch(f"{CLIENT}.fetch_movie_details", details):
            movies, _ = await tmdb_sync.sync_category(self.db, "popular")

        self.assertEqual(len(movies), 2)
        details.assert_not_awaited()
        self.assertEqual(self.movie_count(), 2)

    async def test_resident_movies_are_not_refreshed(self):
        support.make_movie(self.db, 2, "Local Title", vote_average=5.0)
        listing = AsyncMock(return_value=support.tmdb_listing([1, 2]))
        details = details_mock()
        with patch(f"{CLIENT}.fetch_popular_movies", listing), patch(f"{CLIENT}.fetch_movie_details", details):
            movies, _ = await tmdb_sync.sync_category(self.db, "popular")

        details.assert_awaited_once_with(1)
        self.assertEqual(movies[1].title, "Local Title")
        self.assertEqual(movies[1].vote_average, 5.0)

    async def test_duplicate_listing_items_are_synced_once(self):
        listing = AsyncMock(return_value=support.tmdb_listing([7, 7, 8]))
        with patch(f"{CLIENT}.fetch_popular_movies", listing), patch(f"{CLIENT}.fetch_movie_details", details_mock()):
            movies, _ = await tmdb_sync.sync_category(self.db, "popular")
        self.assertEqual([m.tmdb_id for m in movies], [7, 8])

    async def test_multi_page_sync_stops_at_last_page(self):
        pages = {
            4: support.tmdb_listing([1, 2], page=4, total_pages=5),
            5: support.tmdb_listing([3], page=5, total_pages=5),
        }
        listing = AsyncMock(side_effect=lambda page: pages[page])
        with patch(f"{CLIENT}.fetch_top_rated_movies", listing), patch(f"{CLIENT}.fetch_movie_details", details_mock()):
            movies, _ = await tmdb_sync.sync_category(self.db, "top_rated", page=4, pages=3)

        self.assertEqual([m.tmdb_id for m in movies], [1, 2, 3])
        self.assertEqual(listing.await_count, 2)

    async def test_page_count_is_capped(self):
        listing = AsyncMock(side_effect=lambda page: support.tmdb_listing([page], page=page, total_pages=50))
        with patch.object(settings, "sync_max_pages", 2), \
                patch(f"{CLIENT}.fetch_popular_movies", listing), \
                patch(f"{CLIENT}.fetch_movie_details", details_mock()):
            movies, _ = await tmdb_sync.sync_category(self.db, "popular", pages=10)

        self.assertEqual(listing.await_count, 2)
        self.assertEqual(len(movies), 2)

    async def test_listing_failure_propagates(self):
        listing = AsyncMock(side_effect=TMDBError("TMDB API error: 503 Service Unavailable"))
        with patch(f"{CLIENT}.fetch_popular_movies", listing):
            with self.assertRaises(TMDBError):
                await tmdb_sync.sync_category(self.db, "popular")
        self.assertEqual(self.movie_count(), 0)

    async def test_details_failure_aborts_sync(self):
        listing = AsyncMock(return_value=support.tmdb_listing([1]))
        details = AsyncMock(side_effect=TMDBError("TMDB API error: 404 Not Found"))
        with patch(f"{CLIENT}.fetch_popular_movies", listing), patch(f"{CLIENT}.fetch_movie_details", details):
            with self.assertRaises(TMDBError):
                await tmdb_sync.sync_category(self.db, "popular")
        self.assertEqual(self.movie_count(), 0)

    async def test_unknown_category(self):
        with self.assertRaises(ValueError):
            await tmdb_sync.sync_category(self.db, "documentaries")

    async def test_regional_categories_use_discover(self):
        discover = AsyncMock(return_value=support.tmdb_listing([]))
        with patch(f"{CLIENT}.discover_movies", discover):
            movies, total = await tmdb_sync.sync_category(self.db, "bollywood")

        self.assertEqual((movies, total), ([], 0))
        discover.assert_awaited_once_with(page=1, original_language="hi", sort_by="popularity.desc")

    async def test_trending_uses_weekly_window(self):
        trending = AsyncMock(return_value=support.tmdb_listing([]))
        with patch(f"{CLIENT}.fetch_trending_movies", trending):
            await tmdb_sync.sync_category(self.db, "trending", page=2)
        trending.assert_awaited_once_with("week", 2)

    async def test_lost_insert_race_returns_existing_row(self):
        def insert_then_conflict(db, values):
            support.make_movie(db, values["tmdb_id"], "Inserted Elsewhere")
            raise IntegrityError("INSERT INTO movies", {}, Exception("UNIQUE constraint failed: movies.tmdb_id"))

        with patch(f"{CLIENT}.fetch_movie_details", details_mock()), \
                patch.object(crud, "create_movie", side_effect=insert_then_conflict):
            movie, created = await tmdb_sync.ensure_movie(self.db, 42)

        self.assertFalse(created)
        self.assertEqual(movie.title, "Inserted Elsewhere")
        self.assertEqual(self.movie_count(), 1)

    async def test_refresh_movie_overwrites_row(self):
        movie = support.make_movie(self.db, 9, "Old Title")
        details = AsyncMock(return_value=support.tmdb_details(9, "New Title", vote_average=8.1))
        with patch(f"{CLIENT}.fetch_movie_details", details):
            refreshed = await tmdb_sync.refresh_movie(self.db, movie)

        self.assertEqual(refreshed.id, movie.id)
        self.assertEqual(refreshed.title, "New Title")
        self.assertEqual(refreshed.vote_average, 8.1)


class TestMovieValues(unittest.TestCase):
    def test_maps_details_to_columns(self):
        values = tmdb_sync.movie_values_from_tmdb(support.tmdb_details(550, "Fight Club"))
        self.assertEqual(values["tmdb_id"], 550)
        self.assertEqual(values["title"], "Fight Club")
        self.assertEqual(values["release_date"], "2023-05-17")
        self.assertEqual(values["genres"], [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}])

    def test_empty_release_date_becomes_null(self):
        values = tmdb_sync.movie_values_from_tmdb(support.tmdb_details(1, release_date=""))
        self.assertIsNone(values["release_date"])

    def test_tolerates_sparse_payload(self):
        values = tmdb_sync.movie_values_from_tmdb({"id": 5, "original_title": "Oldboy", "genres": [{"name": "no id"}]})
        self.assertEqual(values["title"], "Oldboy")
        self.assertEqual(values["genres"], [])
        self.assertFalse(values["adult"])


if __name__ == "__main__":
    unittest.main()
