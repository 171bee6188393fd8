"""
Unit tests for error types.

Tests cover:
- Codes and HTTP statuses
- Retryability
- Rebuilding errors from HTTP bodies
"""

from resourcedb.errors import (
    DeadlineExceededError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    ResourceError,
    error_from_dict,
    is_retryable,
)


class TestErrors:
    """Tests for ResourceError subclasses."""

    def test_not_found(self):
        """NotFoundError carries the id."""
        err = NotFoundError(7)
        assert err.code == "NOT_FOUND"
        assert err.http_status == 404
        assert err.resource_id == 7
        assert "7" in err.message

    def test_invalid_argument(self):
        """InvalidArgumentError carries field and error list."""
        err = InvalidArgumentError("bad", field_name="name", errors=["Field 'name' is required"])
        assert err.code == "INVALID_ARGUMENT"
        assert err.http_status == 400
        assert err.details == {"field": "name", "errors": ["Field 'name' is required"]}

    def test_deadline_exceeded(self):
        """DeadlineExceededError names the operation."""
        err = DeadlineExceededError("create")
        assert err.code == "DEADLINE_EXCEEDED"
        assert err.http_status == 504
        assert err.details == {"operation": "create"}

    def test_internal(self):
        """InternalError maps to 500."""
        err = InternalError("duplicate id")
        assert err.code == "INTERNAL"
        assert err.http_status == 500

    def test_all_inherit_from_base(self):
        """Every error is a ResourceError."""
        for err in (NotFoundError(1), InvalidArgumentError("x"), DeadlineExceededError("get"), InternalError("x")):
            assert isinstance(err, ResourceError)

    def test_to_dict(self):
        """to_dict() is the HTTP error body."""
        body = NotFoundError(3).to_dict()
        assert body["error_code"] == "NOT_FOUND"
        assert body["details"] == {"resource_id": 3}
        assert body["error"] == "Resource 3 not found"


class TestRetryable:
    """Tests for is_retryable."""

    def test_only_deadline_is_retryable(self):
        assert is_retryable(DeadlineExceededError("get"))
        assert not is_retryable(NotFoundError(1))
        assert not is_retryable(InvalidArgumentError("x"))
        assert not is_retryable(InternalError("x"))
        assert not is_retryable(ValueError("x"))


class TestErrorFromDict:
    """Tests for error_from_dict."""

    def test_round_trip_not_found(self):
        err = error_from_dict(NotFoundError(5).to_dict(), 404)
        assert isinstance(err, NotFoundError)
        assert err.resource_id == 5

    def test_round_trip_invalid_argument(self):
        original = InvalidArgumentError("bad", field_name="price", errors=["too low"])
        err = error_from_dict(original.to_dict(), 400)
        assert isinstance(err, InvalidArgumentError)
        assert err.field_name == "price"
        assert err.errors == ["too low"]

    def test_falls_back_to_status(self):
        """Bodies without an error code are classified by status."""
        assert isinstance(error_from_dict({"error": "gone"}, 404), NotFoundError)
        assert isinstance(error_from_dict({"error": "slow"}, 408), DeadlineExceededError)
        assert isinstance(error_from_dict({}, 400), InvalidArgumentError)

    def test_unknown_code(self):
        err = error_from_dict({"error": "teapot", "error_code": "TEAPOT"}, 418)
        assert type(err) is ResourceError
        assert err.code == "TEAPOT"
