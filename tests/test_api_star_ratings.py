"""
HTTP tests for the 1-5 star endpoints.
"""

from urllib.parse import quote

import pytest

from app.services.db.deps import get_rating_repository
from app.services.db.errors import StorageUnavailable


SONG_ID = "Queen_Bohemian Rhapsody"
REASON = "Song ID, user ID, and rating (1-5) are required"


def submit(client, song_id=SONG_ID, user_id="user_1", rating=5):
    return client.post(
        "/api/star-ratings",
        json={"songId": song_id, "userId": user_id, "rating": rating},
    )


def summary(client, song_id=SONG_ID, user_id=None):
    params = {"userId": user_id} if user_id else None
    return client.get(f"/api/star-ratings/{quote(song_id, safe='')}", params=params)


class BrokenRepository:
    async def submit(self, *args):
        raise StorageUnavailable("connection refused")

    async def aggregate(self, *args):
        raise StorageUnavailable("connection refused")

    async def get_user_value(self, *args):
        raise StorageUnavailable("connection refused")


@pytest.fixture
def broken_client(client):
    client.app.dependency_overrides[get_rating_repository] = BrokenRepository
    yield client
    client.app.dependency_overrides.clear()


# --- POST /api/star-ratings -------------------------------------------------


@pytest.mark.parametrize("rating", [1, 2, 3, 4, 5])
def test_submit_star_rating(client, rating):
    response = submit(client, rating=rating)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Star rating submitted successfully",
    }


@pytest.mark.parametrize(
    "rating",
    [0, 6, -1, 3.5, 3.0, "5", True, None],
    ids=["zero", "six", "negative", "fraction", "whole-float", "string", "bool", "null"],
)
def test_submit_rejects_bad_rating(client, rating):
    response = submit(client, rating=rating)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": REASON}


@pytest.mark.parametrize(
    "payload",
    [
        {"songId": SONG_ID, "userId": "user_1"},
        {"songId": SONG_ID, "rating": 4},
        {"userId": "user_1", "rating": 4},
        {"songId": SONG_ID, "userId": "", "rating": 4},
        {},
    ],
)
def test_submit_rejects_incomplete_body(client, payload):
    response = client.post("/api/star-ratings", json=payload)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": REASON}


def test_submit_rejects_unparseable_json(client):
    response = client.post(
        "/api/star-ratings",
        content="not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": REASON}


def test_rejected_star_rating_stores_nothing(client):
    submit(client, rating=6)

    assert summary(client, user_id="user_1").json()["data"] == {
        "average_rating": 0,
        "total_ratings": 0,
        "userRating": None,
    }


def test_submit_storage_failure(broken_client):
    response = submit(broken_client)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "connection refused"}


# --- GET /api/star-ratings/{songId} -----------------------------------------


def test_get_unrated_song(client):
    response = summary(client, song_id="Nobody_Nothing")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"average_rating": 0, "total_ratings": 0, "userRating": None},
    }


def test_get_average_and_user_rating(client):
    submit(client, user_id="user1", rating=5)
    submit(client, user_id="user2", rating=4)

    response = summary(client, user_id="user1")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"average_rating": 4.5, "total_ratings": 2, "userRating": 5},
    }


def test_get_average_is_rounded_to_one_decimal(client):
    for index, rating in enumerate([4, 4, 4, 5]):
        submit(client, user_id=f"user{index}", rating=rating)

    data = summary(client, user_id="someone-else").json()["data"]

    assert data == {"average_rating": 4.3, "total_ratings": 4, "userRating": None}


def test_resubmission_replaces_previous_rating(client):
    song_id = "Led Zeppelin_Stairway to Heaven"
    submit(client, song_id=song_id, rating=5)
    submit(client, song_id=song_id, rating=2)

    data = summary(client, song_id=song_id, user_id="user_1").json()["data"]

    assert data == {"average_rating": 2.0, "total_ratings": 1, "userRating": 2}


def test_star_and_thumb_ratings_are_separate(client):
    submit(client, rating=3)
    client.post(
        "/api/ratings", json={"songId": SONG_ID, "userId": "user_1", "rating": -1}
    )

    stars = summary(client, user_id="user_1").json()["data"]
    thumbs = client.get(f"/api/ratings/{quote(SONG_ID)}?userId=user_1").json()["data"]

    assert stars == {"average_rating": 3.0, "total_ratings": 1, "userRating": 3}
    assert thumbs == {"thumbs_up": 0, "thumbs_down": 1, "userRating": -1}


def test_song_id_with_slash(client):
    song_id = "AC/DC_Thunderstruck"
    submit(client, song_id=song_id, rating=4)

    data = summary(client, song_id=song_id, user_id="user_1").json()["data"]

    assert data == {"average_rating": 4.0, "total_ratings": 1, "userRating": 4}


def test_get_storage_failure(broken_client):
    response = summary(broken_client, user_id="user_1")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "connection refused"}
