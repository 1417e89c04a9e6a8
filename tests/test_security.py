from datetime import timedelta

import pytest
from jose import jwt

from owned_topics.core.config import get_settings
from owned_topics.core.security import TokenValidationError, issue_owner_token, owner_from_token


def test_token_subject_is_the_owner():
    assert owner_from_token(issue_owner_token("alice@example.com")) == "alice@example.com"


def test_expired_token_is_rejected():
    token = issue_owner_token("u1", expires_delta=timedelta(seconds=-1))
    with pytest.raises(TokenValidationError):
        owner_from_token(token)


def test_token_signed_with_another_key_is_rejected():
    settings = get_settings()
    token = jwt.encode({"sub": "u1"}, settings.jwt_secret + "x", algorithm=settings.jwt_algorithm)
    with pytest.raises(TokenValidationError):
        owner_from_token(token)


@pytest.mark.parametrize("claims", [{}, {"sub": ""}])
def test_token_without_subject_is_rejected(claims):
    settings = get_settings()
    token = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    with pytest.raises(TokenValidationError):
        owner_from_token(token)
