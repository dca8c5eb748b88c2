import base64
import hashlib
import hmac

SERVER = "https://img.example.com"
SECRET = "k"
IMAGE_URL = "https://example.com/a.jpg"


def expected_signature(path: str, key: str = SECRET) -> str:
    """Reference HMAC-SHA1 signature computed independently of the library."""
    digest = hmac.new(key.encode(), path.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode().replace("+", "-").replace("/", "_")
