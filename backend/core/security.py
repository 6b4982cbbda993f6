import hashlib
import secrets
from datetime import datetime, timezone, timedelta
from typing import Optional

from jose import jwt, JWTError

from config import settings

# ── JWT (utilisateurs internes du dashboard) ──────────────────────────────────
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"


def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    ttl = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub":  user_id,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "exp":  datetime.now(timezone.utc) + ttl,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_access_token(token: str) -> Optional[dict]:
    """Claims du JWT, ou None si signature, expiration ou type invalides."""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    return claims if claims.get("type") == ACCESS_TOKEN_TYPE else None


# ── Tokens API partenaires (EDI) ──────────────────────────────────────────────
API_TOKEN_PREFIX = "edi_"
API_TOKEN_DISPLAY_LENGTH = 8


def generate_api_token() -> tuple[str, str, str]:
    """
    Génère un token EDI : (token brut, hash SHA-256, préfixe affichable).
    Le token brut n'est montré qu'une seule fois, seul le hash est stocké.
    """
    raw = API_TOKEN_PREFIX + secrets.token_hex(32)
    return raw, hash_api_token(raw), raw[:API_TOKEN_DISPLAY_LENGTH]


def hash_api_token(raw: str) -> str:
    return hashlib.sha256(raw.encode()).hexdigest()
