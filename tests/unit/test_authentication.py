"""Tests for authenticators."""

import pytest

from clockworkpy.core.authentication import (
    NullAuthenticator,
    SimpleAuthenticator,
    create_authenticator,
)
from clockworkpy.core.config import ClockworkConfig

pytestmark = [pytest.mark.core, pytest.mark.tier(0)]


class TestNullAuthenticator:
    @pytest.mark.parametrize("credential", [None, "", "anything"])
    def test_always_grants_access(self, credential) -> None:
        assert NullAuthenticator().authenticate(credential)


class TestSimpleAuthenticator:
    def test_matching_password(self) -> None:
        assert SimpleAuthenticator("s3cret").authenticate("s3cret")

    @pytest.mark.parametrize("credential", [None, "", "S3CRET", "s3cret "])
    def test_other_credentials_are_rejected(self, credential) -> None:
        assert not SimpleAuthenticator("s3cret").authenticate(credential)

    def test_empty_password_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            SimpleAuthenticator("")


class TestCreateAuthenticator:
    def test_without_password(self) -> None:
        assert isinstance(create_authenticator(ClockworkConfig()), NullAuthenticator)

    def test_with_password(self) -> None:
        config = ClockworkConfig(authentication_password="pw")
        authenticator = create_authenticator(config)
        assert isinstance(authenticator, SimpleAuthenticator)
        assert authenticator.authenticate("pw")
