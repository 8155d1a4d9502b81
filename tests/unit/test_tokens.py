"""Unit tests for bearer-token verification"""
import pytest
from jose import jwt

from auth.tokens import AuthenticationError, TokenVerifier, extract_bearer_token


@pytest.mark.unit
class TestTokenVerifier:
    """Test TokenVerifier issue/verify"""

    def test_issued_token_verifies(self, verifier):
        token = verifier.create_access_token("u1")
        assert verifier.verify(token) == "u1"

    def test_user_id_claim_is_preferred(self, verifier):
        """Test that the userId claim is read first"""
        token = jwt.encode({"userId": "u1", "sub": "other"}, verifier.secret, algorithm="HS256")
        assert verifier.verify(token) == "u1"

    def test_sub_claim_fallback(self, verifier):
        token = jwt.encode({"sub": "u9"}, verifier.secret, algorithm="HS256")
        assert verifier.verify(token) == "u9"

    def test_missing_token_raises(self, verifier):
        with pytest.raises(AuthenticationError, match="No token"):
            verifier.verify("")
        with pytest.raises(AuthenticationError):
            verifier.verify(None)

    def test_wrong_secret_raises(self, verifier):
        token = TokenVerifier("another-secret").create_access_token("u1")
        with pytest.raises(AuthenticationError, match="Invalid"):
            verifier.verify(token)

    def test_expired_token_raises(self, verifier):
        token = verifier.create_access_token("u1", expires_minutes=-1)
        with pytest.raises(AuthenticationError):
            verifier.verify(token)

    def test_garbage_token_raises(self, verifier):
        with pytest.raises(AuthenticationError):
            verifier.verify("not-a-jwt")

    def test_token_without_user_raises(self, verifier):
        token = jwt.encode({"role": "USER"}, verifier.secret, algorithm="HS256")
        with pytest.raises(AuthenticationError, match="user id"):
            verifier.verify(token)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenVerifier("")


@pytest.mark.unit
class TestExtractBearerToken:
    """Test Authorization header parsing"""

    def test_extracts_token(self):
        assert extract_bearer_token("Bearer abc.def") == "abc.def"

    def test_missing_header(self):
        assert extract_bearer_token(None) is None

    def test_wrong_scheme(self):
        assert extract_bearer_token("Basic abc") is None

    def test_empty_token(self):
        assert extract_bearer_token("Bearer   ") is None
