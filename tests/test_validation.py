import pytest
from pydantic import ValidationError

from auth import RegisterRequest
from posts import CommentCreate, PostCreate, PostUpdate
from validation import field_errors


def errors_for(model, data):
    with pytest.raises(ValidationError) as exc:
        model.model_validate(data)
    return field_errors(exc.value.errors())


def test_post_create_strips_and_accepts_valid_body():
    post = PostCreate.model_validate({"title": "  Hi ", "content": "Body", "category": " News ", "status": "published"})
    assert post.title == "Hi"
    assert post.category == "News"
    assert post.status == "published"


def test_post_create_reports_every_field():
    errors = errors_for(PostCreate, {"title": "   ", "content": "x" * 10001, "status": "secret"})
    assert {e["field"] for e in errors} == {"title", "content", "category", "status"}


def test_post_update_fields_are_optional():
    update = PostUpdate.model_validate({"excerpt": None})
    assert update.model_dump(exclude_unset=True) == {"excerpt": None}
    assert [e["field"] for e in errors_for(PostUpdate, {"title": "t" * 201})] == ["title"]


def test_comment_content_is_trimmed_and_required():
    assert CommentCreate.model_validate({"content": " nice "}).content == "nice"
    assert [e["field"] for e in errors_for(CommentCreate, {"content": "  "})] == ["content"]


def test_password_complexity():
    base = {"username": "alice", "email": "a@example.com", "firstName": "A", "lastName": "B"}
    assert RegisterRequest.model_validate({**base, "password": "Abcdef1"}).password == "Abcdef1"

    errors = errors_for(RegisterRequest, {**base, "password": "abcdefg"})
    assert [e["field"] for e in errors] == ["password"]
    assert "uppercase" in errors[0]["message"]


def test_non_object_body_is_rejected(client):
    res = client.post("/api/posts", json=["not", "a", "dict"])
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] is None


def test_malformed_json_is_rejected(client):
    res = client.post("/api/posts", content="{broken", headers={"Content-Type": "application/json"})
    assert res.status_code == 400
    assert res.json()["message"] == "Validation failed"
