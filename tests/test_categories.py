"""
Tests for category management.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import DuplicateError, NotFoundError
from core.schema import CategoryCreate, CategoryUpdate
from services.category_service import CategoryService, default_categories


def test_default_categories_colours_round_robin():
    defaults = default_categories()
    assert len(defaults) == 9
    assert defaults[0].color == "#4285F4"
    assert defaults[8].color == "#4285F4"
    assert [c.type for c in defaults[:4]] == ["income"] * 4


def test_create_and_list_newest_first(user):
    service = CategoryService()
    created = service.create_category(
        user.id, CategoryCreate(name="Freelance", type="income", color="#000000")
    )

    categories = service.list_categories(user.id)
    assert categories[0].id == created.id
    assert len(categories) == 10


def test_duplicate_name_rejected(user):
    service = CategoryService()
    with pytest.raises(DuplicateError):
        service.create_category(user.id, CategoryCreate(name="Food", type="expenditure", color="#111111"))


def test_update_category(user):
    service = CategoryService()
    category = service.create_category(
        user.id, CategoryCreate(name="Gym", type="expenditure", color="#123456")
    )
    updated = service.update_category(user.id, category.id, CategoryUpdate(color="#654321"))
    assert updated.color == "#654321"
    assert updated.name == "Gym"


def test_update_requires_a_field():
    with pytest.raises(PydanticValidationError):
        CategoryUpdate()


def test_categories_are_scoped_to_owner(user, other_user):
    """Another user's category behaves as missing."""
    service = CategoryService()
    category = service.create_category(
        user.id, CategoryCreate(name="Pets", type="expenditure", color="#abcdef")
    )

    with pytest.raises(NotFoundError):
        service.get_category(other_user.id, category.id)
    with pytest.raises(NotFoundError):
        service.delete_category(other_user.id, category.id)

    service.delete_category(user.id, category.id)
    with pytest.raises(NotFoundError):
        service.get_category(user.id, category.id)


def test_seed_is_idempotent(user):
    assert CategoryService().seed_default_categories(user.id) == 0
