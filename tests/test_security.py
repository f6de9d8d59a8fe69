"""Tests for credential hashing, OTP generation and session tokens."""

from datetime import timedelta

import pytest
from jose import jwt

from authservice.config import Settings
from authservice.errors import ExpiredToken, InvalidToken, Unauthenticated
from authservice.services.otp import OTP_LENGTH, OTPGenerator
from authservice.services.security import CredentialHasher
from authservice.services.tokens import TokenIssuer
from conftest import FakeClock


@pytest.fixture
def hasher(settings):
    return CredentialHasher(settings)


class TestCredentialHasher:
    """Tests for CredentialHasher."""

    def test_password_round_trip(self, hasher):
        """A password verifies against its own hash."""
        digest = hasher.hash_password("Abc12345!")
        assert digest != "Abc12345!"
        assert hasher.verify_password("Abc12345!", digest) is True

    def test_wrong_password_fails(self, hasher):
        """A different password does not verify."""
        digest = hasher.hash_password("Abc12345!")
        assert hasher.verify_password("Abc12345?", digest) is False
        assert hasher.verify_password("abc12345!", digest) is False

    def test_password_hash_is_salted(self, hasher):
        """Hashing the same password twice gives different digests."""
        assert hasher.hash_password("Abc12345!") != hasher.hash_password("Abc12345!")

    def test_uses_bcrypt_sha256(self, hasher):
        """Password digests are SHA-256 pre-hashed bcrypt hashes."""
        assert hasher.hash_password("Abc12345!").startswith("$bcrypt-sha256$")

    def test_long_passwords_differing_after_72_bytes(self, hasher):
        """Passwords sharing their first 72 bytes are still told apart."""
        password = "Abc12345!" + "x" * 70 + "A"
        other = "Abc12345!" + "x" * 70 + "B"
        digest = hasher.hash_password(password)
        assert hasher.verify_password(password, digest) is True
        assert hasher.verify_password(other, digest) is False
        assert hasher.verify_password(password[:72], digest) is False

    @pytest.mark.parametrize("digest", ["", None, "not-a-hash", "$2b$04$truncated"])
    def test_malformed_digest_returns_false(self, hasher, digest):
        """Malformed digests never raise."""
        assert hasher.verify_password("Abc12345!", digest) is False

    def test_empty_password_returns_false(self, hasher):
        """An empty candidate never verifies."""
        assert hasher.verify_password("", hasher.hash_password("Abc12345!")) is False

    def test_otp_hash_is_deterministic(self, hasher):
        """The same code always yields the same digest."""
        assert hasher.hash_otp("012345") == hasher.hash_otp("012345")
        assert hasher.hash_otp("012345") != hasher.hash_otp("012346")

    def test_otp_hash_is_keyed(self, settings):
        """Different OTP secrets give different digests."""
        other = CredentialHasher(settings.model_copy(update={"otp_secret": "another-secret"}))
        assert CredentialHasher(settings).hash_otp("123456") != other.hash_otp("123456")

    def test_otp_hash_does_not_contain_code(self, hasher):
        """The digest is a 64-char hex string, not the code."""
        digest = hasher.hash_otp("123456")
        assert len(digest) == 64
        assert "123456" not in digest


class TestOTPGenerator:
    """Tests for OTPGenerator."""

    def test_code_is_six_digits(self, settings):
        """Codes are six numeric characters."""
        generator = OTPGenerator(settings)
        for _ in range(50):
            otp = generator.generate()
            assert len(otp.code) == OTP_LENGTH == 6
            assert otp.code.isascii() and otp.code.isdigit()

    def test_expiry_uses_configured_ttl(self, settings):
        """expires_at is now + the configured TTL."""
        clock = FakeClock()
        generator = OTPGenerator(settings.model_copy(update={"otp_expiration_minutes": 7}), clock)
        otp = generator.generate()
        assert otp.expires_at == clock.now + timedelta(minutes=7)

    def test_default_ttl_is_five_minutes(self):
        """The default policy is a five minute window."""
        assert Settings().otp_expiration_minutes == 5

    def test_codes_vary(self, settings):
        """Codes are random."""
        generator = OTPGenerator(settings)
        assert len({generator.generate().code for _ in range(20)}) > 1


class TestTokenIssuer:
    """Tests for TokenIssuer."""

    def test_issue_and_verify(self, settings):
        """A fresh token verifies to its subject and issue time."""
        clock = FakeClock()
        issuer = TokenIssuer(settings, clock)
        claims = issuer.verify(issuer.issue("user-1"))
        assert claims.subject == "user-1"
        assert claims.issued_at == pytest.approx(clock.now.timestamp())

    def test_expiry_from_settings(self, settings):
        """exp is iat + the configured lifetime."""
        clock = FakeClock()
        token = TokenIssuer(settings, clock).issue("user-1")
        payload = jwt.get_unverified_claims(token)
        expected = int((clock.now + timedelta(minutes=settings.jwt_expiration_minutes)).timestamp())
        assert payload["exp"] == expected

    def test_expired_token(self, settings):
        """A token past its expiry raises ExpiredToken."""
        clock = FakeClock()
        clock.advance(minutes=-(settings.jwt_expiration_minutes + 5))
        issuer = TokenIssuer(settings, clock)
        with pytest.raises(ExpiredToken):
            issuer.verify(issuer.issue("user-1"))

    def test_wrong_secret_is_invalid(self, settings):
        """A token signed with another secret is rejected."""
        forged = TokenIssuer(settings.model_copy(update={"jwt_secret": "attacker"})).issue("user-1")
        with pytest.raises(InvalidToken):
            TokenIssuer(settings).verify(forged)

    def test_tampered_payload_is_invalid(self, settings):
        """Changing the payload breaks the signature even if it looks well-formed."""
        issuer = TokenIssuer(settings)
        header, _, signature = issuer.issue("user-1").split(".")
        other_payload = issuer.issue("user-2").split(".")[1]
        with pytest.raises(InvalidToken):
            issuer.verify(f"{header}.{other_payload}.{signature}")

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_garbage_is_invalid(self, settings, token):
        """Non-JWT strings are rejected."""
        with pytest.raises(InvalidToken):
            TokenIssuer(settings).verify(token)

    def test_missing_claims_is_invalid(self, settings):
        """A correctly signed token without sub/iat is rejected."""
        token = jwt.encode({"foo": "bar"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        with pytest.raises(InvalidToken):
            TokenIssuer(settings).verify(token)

    def test_token_errors_are_unauthenticated(self):
        """Both token failures belong to the Unauthenticated family."""
        assert issubclass(InvalidToken, Unauthenticated)
        assert issubclass(ExpiredToken, Unauthenticated)
