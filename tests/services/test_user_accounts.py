"""User accounts — registration and lookup."""

from uuid import uuid4

import pytest

from trustlend.core.errors import ConflictError, InvalidArgumentError, ResourceNotFoundError
from trustlend.services.user_accounts import current_user, register_user


async def test_register_normalizes_email(test_db):
    user = await register_user(test_db, " Kiran ", " Kiran@Example.COM ")
    assert user.name == "Kiran"
    assert user.email == "kiran@example.com"
    assert user.timezone == "UTC"
    assert (await current_user(test_db, user.id)).id == user.id


async def test_register_duplicate_email(test_db, lender):
    with pytest.raises(ConflictError):
        await register_user(test_db, "Other", "asha@EXAMPLE.com")


@pytest.mark.parametrize("name,email", [("", "a@example.com"), ("A", "  ")])
async def test_register_requires_name_and_email(test_db, name, email):
    with pytest.raises(InvalidArgumentError):
        await register_user(test_db, name, email)


async def test_current_user_unknown(test_db):
    with pytest.raises(ResourceNotFoundError):
        await current_user(test_db, uuid4())
