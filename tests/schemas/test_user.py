"""Tests for user payload parsing."""
from schemas.user import extract_token, extract_user_data, parse_user


class TestParseUser:
    def test__parse_user__nested_user(self) -> None:
        user = parse_user({"user": {"id": 7, "email": "a@b.co", "name": "A"}, "token": "t"})
        assert user is not None
        assert user.id == "7"
        assert user.name == "A"
        assert user.is_verified is False

    def test__parse_user__flat_payload(self) -> None:
        user = parse_user({"id": "u1", "email": "a@b.co", "isVerified": True})
        assert user.is_verified is True

    def test__parse_user__missing_identity_is_none(self) -> None:
        assert parse_user({"user": {"id": "u1"}}) is None
        assert parse_user({"id": "", "email": "a@b.co"}) is None
        assert parse_user(None) is None
        assert parse_user(["not", "a", "dict"]) is None

    def test__parse_user__unexpected_types_are_none(self) -> None:
        assert parse_user({"id": "u1", "email": ["a@b.co"]}) is None

    def test__extract_user_data__prefers_nested(self) -> None:
        assert extract_user_data({"user": {"id": "u1"}, "id": "outer"}) == {"id": "u1"}
        assert extract_user_data({"user": None, "id": "outer"}) == {"user": None, "id": "outer"}


class TestExtractToken:
    def test__extract_token__known_keys(self) -> None:
        assert extract_token({"token": "a"}) == "a"
        assert extract_token({"access_token": "b"}) == "b"
        assert extract_token({"accessToken": "c"}) == "c"

    def test__extract_token__nested_in_user(self) -> None:
        assert extract_token({"user": {"id": "u1", "accessToken": "d"}}) == "d"

    def test__extract_token__absent(self) -> None:
        assert extract_token({"user": {"id": "u1"}}) is None
        assert extract_token({"token": ""}) is None
        assert extract_token(None) is None
