"""
Integration tests for API endpoints.
"""

import pytest

from foliora.api.main import create_app
from foliora.security import TokenVerifier
from foliora.storage import new_id

pytestmark = pytest.mark.asyncio


class TestSystemEndpoints:
    """Tests for health and info endpoints."""

    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"] == "healthy"

    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Foliora"

    async def test_request_id_is_echoed(self, client):
        response = await client.get("/api/genres", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"

    async def test_database_failure_is_reported_generically(self, client, services, monkeypatch):
        from sqlalchemy.exc import OperationalError

        def broken():
            raise OperationalError("SELECT genre FROM books", {}, Exception("disk I/O error"))

        monkeypatch.setattr(services.book_repository, "genres", broken)

        response = await client.get("/api/genres")

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "STORE_ERROR"
        assert "disk" not in response.text

    async def test_unknown_route_uses_error_shape(self, client):
        response = await client.get("/api/nowhere")

        assert response.status_code == 404
        assert set(response.json()) == {"error", "message", "code", "timestamp"}


class TestBooksEndpoints:
    """Tests for book CRUD endpoints."""

    async def test_create_book(self, client, sample_book_data):
        """Client-supplied reviews and upvotes are ignored on create."""
        payload = dict(
            sample_book_data,
            reviews=[{"email": "x@example.com", "rating": 5}],
            upvotes=[{"email": "x@example.com"}],
        )

        response = await client.post("/api/books", json=payload)

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == sample_book_data["title"]
        assert data["reviews"] == []
        assert data["upvotes"] == []
        assert data["readingStatus"] == []
        assert data["averageRating"] is None
        assert data["upvoteCount"] == 0
        assert data["uploader"][0]["email"] == "genly@example.com"

    async def test_create_book_requires_title(self, client):
        response = await client.post("/api/books", json={"author": "Nobody"})

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert "title" in data["message"]

    async def test_get_book_by_id(self, client, sample_book_data):
        book_id = (await client.post("/api/books", json=sample_book_data)).json()["id"]

        response = await client.get(f"/api/books/{book_id}")

        assert response.status_code == 200
        assert response.json()["id"] == book_id

    async def test_get_nonexistent_book(self, client):
        response = await client.get(f"/api/books/{new_id()}")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "Book not found"
        assert data["code"] == "NOT_FOUND"
        assert "timestamp" in data

    async def test_malformed_book_id(self, client):
        response = await client.get("/api/books/not-an-id")

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid book id"

    async def test_update_book(self, client, sample_book_data, auth_headers):
        book_id = (await client.post("/api/books", json=sample_book_data)).json()["id"]

        response = await client.put(
            f"/api/books/{book_id}",
            json={"genre": "Classic"},
            headers=auth_headers("genly@example.com"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["genre"] == "Classic"
        assert data["title"] == sample_book_data["title"]

    @pytest.mark.parametrize("field", ["title", "author"])
    async def test_update_rejects_null_required_field(self, client, sample_book_data, auth_headers, field):
        book_id = (await client.post("/api/books", json=sample_book_data)).json()["id"]

        response = await client.put(
            f"/api/books/{book_id}",
            json={field: None},
            headers=auth_headers("genly@example.com"),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

        unchanged = (await client.get(f"/api/books/{book_id}")).json()
        assert unchanged[field] == sample_book_data[field]

    async def test_delete_book(self, client, sample_book_data, auth_headers):
        book_id = (await client.post("/api/books", json=sample_book_data)).json()["id"]

        response = await client.delete(f"/api/books/{book_id}", headers=auth_headers("genly@example.com"))

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert (await client.get(f"/api/books/{book_id}")).status_code == 404

    async def test_delete_missing_book(self, client, auth_headers):
        response = await client.delete(f"/api/books/{new_id()}", headers=auth_headers("a@example.com"))

        assert response.status_code == 404


class TestListing:
    """Tests for the filtered, sorted and paginated listing."""

    async def test_upvote_sort_second_page(self, client, seed_book):
        for i, count in enumerate([0, 3, 1, 5, 2]):
            seed_book(f"Book {i}", upvotes=count)

        response = await client.get("/api/books", params={"sort": "upvotes", "page": 2, "limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert [b["upvoteCount"] for b in data["books"]] == [2, 1]
        assert data["pagination"] == {"total": 5, "page": 2, "limit": 2, "totalPages": 3}

    async def test_garbage_parameters_fall_back_to_defaults(self, client, seed_book):
        first = seed_book("First")
        second = seed_book("Second")

        response = await client.get("/api/books", params={"sort": "sideways", "page": "abc", "limit": "-4"})

        assert response.status_code == 200
        data = response.json()
        assert [b["id"] for b in data["books"]] == [second.id, first.id]
        assert data["pagination"]["page"] == 1
        assert data["pagination"]["limit"] == 12

    async def test_oversized_page_and_limit_are_clamped(self, client, seed_book):
        seed_book("Only")
        huge = "99999999999999999999"

        response = await client.get("/api/books", params={"page": huge, "limit": huge})

        assert response.status_code == 200
        data = response.json()
        assert data["books"] == []
        assert data["pagination"]["total"] == 1
        assert data["pagination"]["limit"] == 100

    async def test_min_rating_filter(self, client, seed_book):
        seed_book("Unrated")
        seed_book("Low", ratings=(2,))
        high = seed_book("High", ratings=(5, 4))

        response = await client.get("/api/books", params={"minRating": "4"})

        data = response.json()
        assert [b["id"] for b in data["books"]] == [high.id]
        assert data["pagination"]["total"] == 1
        assert data["books"][0]["averageRating"] == pytest.approx(4.5)

    async def test_genre_and_search(self, client, seed_book):
        seed_book("Dune", author="Frank Herbert", genre="Science Fiction")
        seed_book("Emma", author="Jane Austen", genre="Classic")

        by_genre = (await client.get("/api/books", params={"genre": "Classic"})).json()
        by_search = (await client.get("/api/books", params={"search": "herb"})).json()
        everything = (await client.get("/api/books", params={"genre": "all"})).json()

        assert [b["title"] for b in by_genre["books"]] == ["Emma"]
        assert [b["title"] for b in by_search["books"]] == ["Dune"]
        assert everything["pagination"]["total"] == 2

    async def test_two_pass_strategy_matches(self, settings, seed_book):
        from dataclasses import replace
        from httpx import ASGITransport, AsyncClient

        for i, count in enumerate([0, 3, 1, 5, 2]):
            seed_book(f"Book {i}", upvotes=count, ratings=(count,) if count else ())

        results = {}
        for strategy in ("pipeline", "two_pass"):
            app = create_app(replace(settings, book_listing_strategy=strategy))
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                response = await ac.get("/api/books", params={"sort": "rating", "limit": 3, "page": 2})
            app.state.services.close()
            results[strategy] = response.json()

        assert results["pipeline"] == results["two_pass"]


class TestCatalogEndpoints:
    """Tests for genres, recent reviews and top books."""

    async def test_genres(self, client, seed_book):
        seed_book("A", genre="Mystery")
        seed_book("B", genre="Fantasy")

        response = await client.get("/api/genres")

        assert response.json() == ["Fantasy", "Mystery"]

    async def test_recent_reviews(self, client, seed_book):
        book = seed_book("Kindred", ratings=(4,))

        response = await client.get("/api/recent-reviews")

        data = response.json()
        assert len(data) == 1
        assert data[0]["bookId"] == book.id
        assert data[0]["bookTitle"] == "Kindred"
        assert data[0]["rating"] == 4

    async def test_top_rated_and_upvoted(self, client, seed_book):
        seed_book("Unrated", upvotes=4)
        rated = seed_book("Rated", ratings=(3,), upvotes=1)

        top_rated = (await client.get("/api/books/top/rated")).json()
        top_upvoted = (await client.get("/api/books/top/upvoted")).json()

        assert [b["id"] for b in top_rated] == [rated.id]
        assert [b["title"] for b in top_upvoted] == ["Unrated", "Rated"]


class TestAuthentication:
    """Bearer credential and email-match guards."""

    async def test_missing_token_is_unauthorized(self, client, seed_book):
        book = seed_book("Dune")

        response = await client.put(f"/api/books/{book.id}", json={"genre": "X"})

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized access"

    async def test_non_bearer_header_is_unauthorized(self, client):
        response = await client.get(
            "/api/my-books",
            params={"email": "a@example.com"},
            headers={"Authorization": "Basic abc"},
        )
        assert response.status_code == 401

    async def test_invalid_token_is_forbidden(self, client, seed_book):
        book = seed_book("Dune")

        response = await client.put(
            f"/api/books/{book.id}",
            json={"genre": "X"},
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden access"

    async def test_token_signed_with_other_secret_is_forbidden(self, client):
        forged = TokenVerifier(secret_key="someone-else").issue("a@example.com")

        response = await client.get(
            "/api/my-books",
            params={"email": "a@example.com"},
            headers={"Authorization": f"Bearer {forged}"},
        )

        assert response.status_code == 403

    async def test_email_query_must_match_token(self, client, auth_headers):
        response = await client.get(
            "/api/user/stats",
            params={"email": "victim@example.com"},
            headers=auth_headers("me@example.com"),
        )

        assert response.status_code == 403

    async def test_missing_email_query_is_forbidden(self, client, auth_headers):
        response = await client.get("/api/reading-goals", headers=auth_headers("me@example.com"))

        assert response.status_code == 403

    async def test_body_email_must_match_token(self, client, seed_book, auth_headers):
        book = seed_book("Dune")

        response = await client.patch(
            f"/api/books/{book.id}/upvote",
            json={"email": "victim@example.com"},
            headers=auth_headers("me@example.com"),
        )

        assert response.status_code == 403


class TestInteractionEndpoints:
    """Tests for upvote, review and reading status endpoints."""

    async def test_upvote_then_duplicate(self, client, seed_book, auth_headers):
        book = seed_book("Dune")
        headers = auth_headers("reader@example.com")
        body = {"email": "reader@example.com", "name": "Reader", "photo": "r.png"}

        first = await client.patch(f"/api/books/{book.id}/upvote", json=body, headers=headers)
        second = await client.patch(f"/api/books/{book.id}/upvote", json=body, headers=headers)

        assert first.status_code == 200
        assert first.json()["upvoteCount"] == 1
        assert second.status_code == 400
        assert second.json()["error"] == "You already upvoted this book"
        assert (await client.get(f"/api/books/{book.id}")).json()["upvoteCount"] == 1

    async def test_self_upvote_forbidden(self, client, seed_book, auth_headers):
        book = seed_book("Dune", uploader="author@example.com")

        response = await client.patch(
            f"/api/books/{book.id}/upvote",
            json={"email": "author@example.com"},
            headers=auth_headers("author@example.com"),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "You can't upvote your own book"

    async def test_upvote_missing_book(self, client, auth_headers):
        response = await client.patch(
            f"/api/books/{new_id()}/upvote",
            json={"email": "reader@example.com"},
            headers=auth_headers("reader@example.com"),
        )

        assert response.status_code == 404

    async def test_review_lifecycle(self, client, seed_book, auth_headers):
        book = seed_book("Emma")
        headers = auth_headers("critic@example.com")
        review = {
            "email": "critic@example.com",
            "name": "Critic",
            "rating": 4,
            "comment": "Witty",
            "date": "2024-05-01T10:00:00",
        }

        added = await client.post(f"/api/books/{book.id}/review", json=review, headers=headers)
        duplicate = await client.post(f"/api/books/{book.id}/review", json=review, headers=headers)
        removed = await client.request(
            "DELETE",
            f"/api/books/{book.id}/review",
            json={"email": "critic@example.com"},
            headers=headers,
        )
        removed_again = await client.request(
            "DELETE",
            f"/api/books/{book.id}/review",
            json={"email": "critic@example.com"},
            headers=headers,
        )

        assert added.status_code == 200
        assert added.json()["averageRating"] == pytest.approx(4.0)
        assert added.json()["reviews"][0]["comment"] == "Witty"
        assert duplicate.status_code == 400
        assert removed.status_code == 200
        assert removed.json()["reviewCount"] == 0
        assert removed_again.status_code == 404

    async def test_rating_out_of_range(self, client, seed_book, auth_headers):
        book = seed_book("Emma")

        response = await client.post(
            f"/api/books/{book.id}/review",
            json={"email": "critic@example.com", "rating": 6},
            headers=auth_headers("critic@example.com"),
        )

        assert response.status_code == 400

    async def test_reading_status_upsert(self, client, seed_book, auth_headers):
        book = seed_book("Solaris")
        headers = auth_headers("reader@example.com")
        url = f"/api/books/{book.id}/reading-status"

        await client.patch(url, json={"email": "reader@example.com", "readingStatus": "Reading"}, headers=headers)
        await client.patch(url, json={"email": "reader@example.com", "readingStatus": "Reading"}, headers=headers)
        response = await client.patch(
            url, json={"email": "reader@example.com", "readingStatus": "Completed"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["readingStatus"] == [{"email": "reader@example.com", "status": "Completed"}]

    async def test_reading_status_defaults_to_not_started(self, client, seed_book, auth_headers):
        book = seed_book("Solaris")

        response = await client.patch(
            f"/api/books/{book.id}/reading-status",
            json={"email": "reader@example.com"},
            headers=auth_headers("reader@example.com"),
        )

        assert response.json()["readingStatus"][0]["status"] == "Not Started"

    async def test_unknown_reading_status_rejected(self, client, seed_book, auth_headers):
        book = seed_book("Solaris")

        response = await client.patch(
            f"/api/books/{book.id}/reading-status",
            json={"email": "reader@example.com", "readingStatus": "Abandoned"},
            headers=auth_headers("reader@example.com"),
        )

        assert response.status_code == 400


class TestUserEndpoints:
    """Tests for the caller's books and statistics."""

    async def test_my_books_and_stats(self, client, seed_book, auth_headers):
        mine = seed_book("Mine", uploader="me@example.com")
        other = seed_book("Other", uploader="them@example.com")
        headers = auth_headers("me@example.com")

        await client.post(
            f"/api/books/{other.id}/review",
            json={"email": "me@example.com", "rating": 5},
            headers=headers,
        )
        await client.patch(
            f"/api/books/{other.id}/reading-status",
            json={"email": "me@example.com", "readingStatus": "Reading"},
            headers=headers,
        )

        my_books = await client.get("/api/my-books", params={"email": "me@example.com"}, headers=headers)
        stats = await client.get("/api/user/stats", params={"email": "me@example.com"}, headers=headers)

        assert [b["id"] for b in my_books.json()] == [mine.id]
        assert stats.json() == {
            "uploadedBooks": 1,
            "reviewsGiven": 1,
            "currentlyReading": 1,
            "completedBooks": 0,
        }


class TestReadingGoalEndpoints:
    """Tests for reading goal CRUD."""

    async def test_goal_lifecycle(self, client, auth_headers):
        headers = auth_headers("me@example.com")
        params = {"email": "me@example.com"}

        created = await client.post("/api/reading-goals", params=params, json={"target": "Read 12 books"}, headers=headers)
        goal_id = created.json()["id"]
        updated = await client.patch(
            f"/api/reading-goals/{goal_id}", params=params, json={"progress": 150}, headers=headers
        )
        listed = await client.get("/api/reading-goals", params=params, headers=headers)
        deleted = await client.delete(f"/api/reading-goals/{goal_id}", params=params, headers=headers)

        assert created.status_code == 201
        assert created.json()["progress"] == 0
        assert updated.json()["progress"] == 150
        assert [g["id"] for g in listed.json()] == [goal_id]
        assert deleted.status_code == 200

    async def test_other_users_goal_is_not_found(self, client, auth_headers):
        mine = await client.post(
            "/api/reading-goals",
            params={"email": "me@example.com"},
            json={"target": "Mine"},
            headers=auth_headers("me@example.com"),
        )

        response = await client.patch(
            f"/api/reading-goals/{mine.json()['id']}",
            params={"email": "them@example.com"},
            json={"progress": 99},
            headers=auth_headers("them@example.com"),
        )

        assert response.status_code == 404


class TestBookmarkEndpoints:
    """Tests for bookmark CRUD."""

    async def test_bookmark_lifecycle(self, client, seed_book, auth_headers):
        book = seed_book("Kindred")
        headers = auth_headers("me@example.com")
        params = {"email": "me@example.com"}

        created = await client.post(
            "/api/bookmarks", params=params, json={"bookId": book.id, "content": "p. 12"}, headers=headers
        )
        bookmark_id = created.json()["id"]
        updated = await client.patch(
            f"/api/bookmarks/{bookmark_id}", params=params, json={"content": "p. 30"}, headers=headers
        )
        filtered = await client.get("/api/bookmarks", params={**params, "bookId": book.id}, headers=headers)
        other_book = await client.get("/api/bookmarks", params={**params, "bookId": new_id()}, headers=headers)

        assert created.status_code == 201
        assert created.json()["bookId"] == book.id
        assert updated.json()["content"] == "p. 30"
        assert [b["id"] for b in filtered.json()] == [bookmark_id]
        assert other_book.json() == []

    async def test_bookmark_survives_book_deletion(self, client, seed_book, auth_headers):
        book = seed_book("Kindred")
        headers = auth_headers("me@example.com")
        params = {"email": "me@example.com"}

        await client.post("/api/bookmarks", params=params, json={"bookId": book.id, "content": "ch. 3"}, headers=headers)
        await client.delete(f"/api/books/{book.id}", headers=headers)

        response = await client.get("/api/bookmarks", params=params, headers=headers)

        assert [b["content"] for b in response.json()] == ["ch. 3"]

    async def test_delete_other_users_bookmark_is_not_found(self, client, auth_headers):
        created = await client.post(
            "/api/bookmarks",
            params={"email": "me@example.com"},
            json={"bookId": new_id(), "content": "mine"},
            headers=auth_headers("me@example.com"),
        )

        response = await client.delete(
            f"/api/bookmarks/{created.json()['id']}",
            params={"email": "them@example.com"},
            headers=auth_headers("them@example.com"),
        )

        assert response.status_code == 404
