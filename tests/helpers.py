"""
Constants and small helpers shared by the test modules.
"""
import hashlib


def password_hash(password: str) -> str:
    """Uppercase SHA256, the wire format of passwords."""
    return hashlib.sha256(password.encode()).hexdigest().upper()


ADMIN = "admin"
ADMIN_PASSWORD = password_hash("admin-secret")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
