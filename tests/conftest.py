"""Shared fixtures: an app on in-memory SQLite with a freshly generated RSA key."""
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from auth_api import create_app
from models import storage
from models.user import Role

PASSWORD = "correct-horse-1"


@pytest.fixture(scope="session")
def private_key_pem():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture
def upload_folder(tmp_path):
    return str(tmp_path / "uploads")


@pytest.fixture
def app(private_key_pem, upload_folder):
    app = create_app("testing", overrides={"PRIVATE_KEY": private_key_pem, "UPLOAD_FOLDER": upload_folder})
    yield app
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def tokens(app):
    return app.extensions["token_service"]


@pytest.fixture
def users(app):
    return app.extensions["user_service"]


@pytest.fixture
def register(client):
    """Run the two registration steps. Cookies are dropped unless keep_cookies is set."""
    def _register(email="jane@example.com", full_name="Jane Doe", password=PASSWORD, keep_cookies=False):
        res = client.post(
            "/api/auth/register/send-otp",
            json={"fullName": full_name, "email": email, "password": password, "confirmPassword": password},
        )
        assert res.status_code == 200, res.get_json()
        challenge = res.get_json()
        res = client.post(
            "/api/auth/register/verify-otp",
            json={
                "fullName": full_name,
                "email": email,
                "otp": challenge["otp"],
                "hashOtp": challenge["hashOtp"],
            },
        )
        assert res.status_code == 200, res.get_json()
        if not keep_cookies:
            client.delete_cookie("accessToken")
            client.delete_cookie("refreshToken")
        return res.get_json()

    return _register


@pytest.fixture
def bearer(tokens):
    def _bearer(user_id, role="customer"):
        token = tokens.sign_access_token({"userId": user_id, "role": role})
        return {"Authorization": f"Bearer {token}"}

    return _bearer


@pytest.fixture
def admin(register, users, bearer):
    """A registered admin and its Authorization header."""
    user = register(email="admin@example.com", full_name="Ada Admin")
    record = users.find_by_id(user["id"])
    record.role = Role.ADMIN
    users.save(record)
    return user, bearer(user["id"], role="admin")
