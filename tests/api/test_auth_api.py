import time

import jwt
import pytest
from sqlalchemy import select

from ethshot.client.nonce import APP_PHRASE
from ethshot.core.config import Settings, get_settings
from ethshot.models.auth import WalletUser
from tests.conftest import OTHER_PRIVATE_KEY, TEST_PRIVATE_KEY, sign_message


def request_nonce(client, wallet_address):
    response = client.post("/api/auth", json={"action": "generate_nonce", "walletAddress": wallet_address})
    assert response.status_code == 200
    return response.json()


def login(client, wallet_address, private_key=TEST_PRIVATE_KEY):
    challenge = request_nonce(client, wallet_address)
    signature = sign_message(private_key, challenge["message"])
    return client.post(
        "/api/auth",
        json={"action": "verify_signature", "walletAddress": wallet_address, "signature": signature},
    )


class TestAuthInfo:
    def test_lists_actions(self, client):
        response = client.get("/api/auth")

        assert response.status_code == 200
        assert response.json()["actions"] == [
            "generate_nonce",
            "verify_signature",
            "validate_token",
            "refresh_token",
        ]


class TestGenerateNonce:
    """Test cases for action=generate_nonce"""

    def test_generate_nonce_success(self, client, wallet_account):
        before = time.time()
        data = request_nonce(client, wallet_account.address)

        wallet = wallet_account.address.lower()
        assert data["success"] is True
        assert data["walletAddress"] == wallet
        assert data["nonce"].startswith(APP_PHRASE)
        assert data["message"] == f"{data['nonce']}\n\nWallet: {wallet}"
        assert before + 300 - 5 <= data["expiresAt"] <= time.time() + 300 + 5

    def test_nonces_are_unique(self, client, wallet_account):
        first = request_nonce(client, wallet_account.address)
        second = request_nonce(client, wallet_account.address)

        assert first["nonce"] != second["nonce"]

    def test_missing_wallet(self, client):
        response = client.post("/api/auth", json={"action": "generate_nonce"})

        assert response.status_code == 400
        assert "walletAddress" in response.json()["detail"]

    @pytest.mark.parametrize("wallet", ["0x123", "not-an-address", "0xZZ34567890123456789012345678901234567890"])
    def test_invalid_wallet(self, client, wallet):
        response = client.post("/api/auth", json={"action": "generate_nonce", "walletAddress": wallet})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid wallet address format"

    def test_unavailable_without_signing_key(self, client, wallet_account):
        from main import app

        app.dependency_overrides[get_settings] = lambda: Settings(
            SUPABASE_JWT_SECRET=None, JWT_PRIVATE_KEY_PEM=None, REDIS_HOST=None
        )

        response = client.post(
            "/api/auth", json={"action": "generate_nonce", "walletAddress": wallet_account.address}
        )

        assert response.status_code == 503
        assert response.json() == {"detail": "Authentication service unavailable"}
        assert "SUPABASE_JWT_SECRET" not in response.text


class TestVerifySignature:
    """Test cases for action=verify_signature"""

    def test_login_success(self, client, wallet_account, test_settings):
        response = login(client, wallet_account.address)

        assert response.status_code == 200
        data = response.json()
        assert data["walletAddress"] == wallet_account.address.lower()
        assert data["tokenType"] == "bearer"

        claims = jwt.decode(
            data["jwtToken"],
            test_settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience="authenticated",
        )
        assert claims["sub"] == wallet_account.address.lower()
        assert claims["role"] == "authenticated"

    def test_login_records_wallet_user(self, client, wallet_account, session_factory):
        login(client, wallet_account.address)
        login(client, wallet_account.address)

        with session_factory() as session:
            user = session.execute(
                select(WalletUser).where(WalletUser.wallet_address == wallet_account.address.lower())
            ).scalar_one()
        assert user.login_count == 2

    def test_challenge_cannot_be_replayed(self, client, wallet_account):
        challenge = request_nonce(client, wallet_account.address)
        body = {
            "action": "verify_signature",
            "walletAddress": wallet_account.address,
            "signature": sign_message(TEST_PRIVATE_KEY, challenge["message"]),
        }

        assert client.post("/api/auth", json=body).status_code == 200
        replay = client.post("/api/auth", json=body)
        assert replay.status_code == 401

    def test_signature_from_another_wallet(self, client, wallet_account):
        response = login(client, wallet_account.address, private_key=OTHER_PRIVATE_KEY)

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid signature"

    def test_without_nonce(self, client, wallet_account):
        response = client.post(
            "/api/auth",
            json={"action": "verify_signature", "walletAddress": wallet_account.address, "signature": "0x00"},
        )

        assert response.status_code == 401
        assert "nonce" in response.json()["detail"]

    def test_garbage_signature(self, client, wallet_account):
        request_nonce(client, wallet_account.address)

        response = client.post(
            "/api/auth",
            json={"action": "verify_signature", "walletAddress": wallet_account.address, "signature": "0xdeadbeef"},
        )

        assert response.status_code == 401

    def test_missing_signature(self, client, wallet_account):
        response = client.post(
            "/api/auth", json={"action": "verify_signature", "walletAddress": wallet_account.address}
        )

        assert response.status_code == 400


class TestTokenActions:
    """Test cases for action=validate_token and action=refresh_token"""

    def test_validate_token(self, client, wallet_account):
        token = login(client, wallet_account.address).json()["jwtToken"]

        response = client.post("/api/auth", json={"action": "validate_token", "token": token})

        assert response.status_code == 200
        data = response.json()
        assert data["walletAddress"] == wallet_account.address.lower()
        assert abs(data["expiresAt"] - (time.time() + 24 * 60 * 60)) <= 3600

    def test_refresh_token(self, client, wallet_account):
        token = login(client, wallet_account.address).json()["jwtToken"]

        response = client.post("/api/auth", json={"action": "refresh_token", "currentToken": token})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Token refreshed successfully"
        assert data["walletAddress"] == wallet_account.address.lower()

        validated = client.post("/api/auth", json={"action": "validate_token", "jwtToken": data["jwtToken"]})
        assert validated.status_code == 200

    def test_validate_rejects_forged_token(self, client, wallet_account):
        forged = jwt.encode(
            {"sub": wallet_account.address.lower(), "aud": "authenticated", "exp": int(time.time()) + 60},
            "some-other-secret-that-is-long-enough!!",
            algorithm="HS256",
        )

        response = client.post("/api/auth", json={"action": "validate_token", "token": forged})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"

    def test_validate_rejects_expired_token(self, client, test_settings, wallet_account):
        expired = jwt.encode(
            {"sub": wallet_account.address.lower(), "aud": "authenticated", "exp": int(time.time()) - 60},
            test_settings.SUPABASE_JWT_SECRET,
            algorithm="HS256",
        )

        response = client.post("/api/auth", json={"action": "refresh_token", "token": expired})

        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"

    def test_missing_token(self, client):
        response = client.post("/api/auth", json={"action": "validate_token"})

        assert response.status_code == 400


def test_unknown_action(client):
    response = client.post("/api/auth", json={"action": "logout"})

    assert response.status_code == 400
    assert "generate_nonce" in response.json()["detail"]
