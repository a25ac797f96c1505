"""
Tests for @Entity mapping and JSON conversion of entities.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytest

from twentyonepoints.data import Column, Entity, Id, entity_from_dict, entity_to_dict
from twentyonepoints.data.entity import (
    get_entity_metadata,
    is_entity,
    to_camel_case,
    to_snake_case,
)
from twentyonepoints.domain import User
from twentyonepoints.exceptions import EntityDefinitionException, RequestValidationException
from twentyonepoints.web.serialization import serialize_json


class TestEntityMetadata:
    """Tests for the metadata built by @Entity."""

    def test_user_is_mapped_to_jhi_user(self):
        meta = get_entity_metadata(User)
        assert meta.table_name == "jhi_user"
        assert meta.id_field.name == "id"
        assert meta.table.c["login"].type.length == 50

    def test_field_lookup_by_python_or_json_name(self):
        meta = get_entity_metadata(User)
        assert meta.field("first_name") is meta.field("firstName")
        assert meta.field("nickname") is None

    def test_timestamps_are_store_managed(self):
        meta = get_entity_metadata(User)
        assert meta.field("createdDate").update_on_create
        assert meta.field("lastModifiedDate").update_on_save
        assert not meta.field("login").store_managed

    def test_entity_requires_dataclass(self):
        with pytest.raises(EntityDefinitionException):

            @Entity()
            class NotADataclass:
                id: int = Id()

    def test_entity_requires_id(self):
        with pytest.raises(EntityDefinitionException):

            @Entity(table="no_id_widget")
            @dataclass
            class Widget:
                name: str = Column(default="")

    def test_is_entity(self):
        assert is_entity(User)
        assert not is_entity(dict)


class TestNameConversion:
    def test_to_camel_case(self):
        assert to_camel_case("last_modified_date") == "lastModifiedDate"
        assert to_camel_case("login") == "login"

    def test_to_snake_case(self):
        assert to_snake_case("lastModifiedDate") == "last_modified_date"
        assert to_snake_case("login") == "login"


class TestEntityFromDict:
    """Tests for building entities from request bodies."""

    def test_camel_case_keys(self):
        user = entity_from_dict(
            User, {"login": "jdoe", "firstName": "John", "langKey": "en"}
        )
        assert user.login == "jdoe"
        assert user.first_name == "John"
        assert user.lang_key == "en"
        assert user.id is None

    def test_snake_case_keys(self):
        user = entity_from_dict(User, {"last_name": "Doe"})
        assert user.last_name == "Doe"

    def test_unknown_properties_ignored(self):
        user = entity_from_dict(User, {"login": "jdoe", "password": "secret"})
        assert user.login == "jdoe"
        assert not hasattr(user, "password")

    def test_defaults_for_missing_fields(self):
        user = entity_from_dict(User, {})
        assert user.login == ""
        assert user.activated is False
        assert user.authorities == []

    def test_id_from_string(self):
        assert entity_from_dict(User, {"id": "42"}).id == 42

    def test_largest_id_accepted(self):
        assert entity_from_dict(User, {"id": 2**63 - 1}).id == 2**63 - 1

    def test_timestamp_converted_to_naive_utc(self):
        user = entity_from_dict(User, {"createdDate": "2024-01-02T03:04:05+02:00"})
        assert user.created_date == datetime(2024, 1, 2, 1, 4, 5)

    def test_zulu_timestamp(self):
        user = entity_from_dict(User, {"createdDate": "2024-01-02T03:04:05Z"})
        assert user.created_date == datetime(2024, 1, 2, 3, 4, 5)

    @pytest.mark.parametrize(
        "body",
        [
            {"id": "abc"},
            {"id": True},
            {"activated": "yes"},
            {"login": 12},
            {"authorities": "ROLE_USER"},
            {"createdDate": "yesterday"},
            {"id": 99999999999999999999999},
            {"id": "-99999999999999999999999"},
        ],
    )
    def test_invalid_values_rejected(self, body):
        with pytest.raises(RequestValidationException):
            entity_from_dict(User, body)

    def test_non_object_rejected(self):
        with pytest.raises(RequestValidationException):
            entity_from_dict(User, ["jdoe"])


class TestEntityToDict:
    def test_camel_case_output(self):
        user = User(id=1, login="jdoe", first_name="John", authorities=["ROLE_USER"])
        data = entity_to_dict(user)
        assert data["id"] == 1
        assert data["firstName"] == "John"
        assert data["authorities"] == ["ROLE_USER"]
        assert "first_name" not in data

    def test_serialized_json(self):
        user = User(id=7, login="jdoe", created_date=datetime(2024, 5, 6, 7, 8, 9))
        body = serialize_json(user)
        assert b'"login":"jdoe"' in body
        assert b'"createdDate":"2024-05-06T07:08:09"' in body

    def test_serialized_list_of_entities(self):
        body = serialize_json([User(id=1, login="a"), User(id=2, login="b")])
        assert body.startswith(b"[{")
        assert b'"login":"b"' in body


@Entity(table="test_gadget")
@dataclass
class Gadget:
    id: Optional[int] = Id()
    label: str = Column(default="", unique=True, nullable=False)
    weight: Optional[float] = None


def test_plain_annotations_become_nullable_columns():
    meta = get_entity_metadata(Gadget)
    assert meta.table.c["weight"].nullable
    assert not meta.table.c["label"].nullable
    assert meta.table.c["label"].unique
