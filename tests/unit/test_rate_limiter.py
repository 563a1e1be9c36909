"""Unit tests for rate limit bucket selection."""

from uuid import uuid4

from starlette.requests import Request

from procapacity.config import settings
from procapacity.core.rate_limiter import bucket_for
from procapacity.core.security import create_token_pair


def make_request(path: str, headers: dict[str, str] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("10.0.0.5", 5123),
    }
    return Request(scope)


class TestBucketFor:
    def test_credential_endpoints_use_the_auth_allowance(self):
        bucket = bucket_for(make_request(f"{settings.API_V1_PREFIX}/auth/login"))

        assert bucket.key == "ratelimit:auth:10.0.0.5"
        assert bucket.limit == settings.AUTH_RATE_LIMIT_REQUESTS

    def test_authenticated_requests_are_counted_per_user(self):
        user_id = uuid4()
        access_token, _ = create_token_pair(user_id, uuid4(), "OWNER")

        bucket = bucket_for(
            make_request(
                f"{settings.API_V1_PREFIX}/projects",
                {"Authorization": f"Bearer {access_token}"},
            )
        )

        assert bucket.key == f"ratelimit:user:{user_id}"
        assert bucket.limit == settings.RATE_LIMIT_REQUESTS

    def test_invalid_token_falls_back_to_forwarded_ip(self):
        bucket = bucket_for(
            make_request(
                f"{settings.API_V1_PREFIX}/projects",
                {"Authorization": "Bearer nope", "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
            )
        )

        assert bucket.key == "ratelimit:ip:203.0.113.7"
