import pytest
from unittest.mock import MagicMock
from bson import ObjectId
from pymongo.errors import DuplicateKeyError
from core.exceptions import Conflict, NotFound
from models.review import ReviewCreate
from services import review_service
from conftest import make_cursor


@pytest.mark.asyncio
async def test_create_review_refreshes_restaurant_rating(fake_db, customer):
    restaurant_id = ObjectId()
    fake_db.restaurants.find_one.return_value = {"_id": restaurant_id}
    fake_db.reviews.insert_one.return_value = MagicMock(inserted_id=ObjectId())
    fake_db.reviews.aggregate.return_value = make_cursor([{"_id": None, "average": 4.333, "count": 3}])

    review = await review_service.create_review(customer, ReviewCreate(restaurant_id=str(restaurant_id), rating=5))

    assert review["rating"] == 5
    assert review["user_name"] == customer.name
    fake_db.restaurants.update_one.assert_awaited_once_with(
        {"_id": restaurant_id}, {"$set": {"rating": 4.3, "review_count": 3}}
    )


@pytest.mark.asyncio
async def test_second_review_is_a_conflict(fake_db, customer):
    restaurant_id = ObjectId()
    fake_db.restaurants.find_one.return_value = {"_id": restaurant_id}
    fake_db.reviews.find_one.return_value = {"_id": ObjectId()}
    with pytest.raises(Conflict):
        await review_service.create_review(customer, ReviewCreate(restaurant_id=str(restaurant_id), rating=4))


@pytest.mark.asyncio
async def test_duplicate_key_race_is_a_conflict(fake_db, customer):
    fake_db.restaurants.find_one.return_value = {"_id": ObjectId()}
    fake_db.reviews.insert_one.side_effect = DuplicateKeyError("E11000")
    with pytest.raises(Conflict):
        await review_service.create_review(customer, ReviewCreate(restaurant_id=str(ObjectId()), rating=4))


@pytest.mark.asyncio
async def test_reviews_of_missing_restaurant(fake_db):
    with pytest.raises(NotFound):
        await review_service.list_restaurant_reviews(str(ObjectId()))


@pytest.mark.asyncio
async def test_stats_distribution(fake_db):
    fake_db.reviews.aggregate.return_value = make_cursor([{"_id": 5, "count": 2}, {"_id": 3, "count": 1}])
    stats = await review_service.get_review_stats(str(ObjectId()))
    assert stats["total_reviews"] == 3
    assert stats["average_rating"] == 4.3
    assert stats["rating_distribution"] == {1: 0, 2: 0, 3: 1, 4: 0, 5: 2}


@pytest.mark.asyncio
async def test_delete_someone_elses_review(fake_db, customer):
    with pytest.raises(NotFound):
        await review_service.delete_review(customer, str(ObjectId()))
