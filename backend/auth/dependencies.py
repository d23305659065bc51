import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.database import get_db
from backend.models.provider import Provider

security = HTTPBearer()


def get_current_provider(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Provider:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    provider_id = payload.get("sub")
    if not provider_id:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    provider = db.query(Provider).filter(Provider.id == provider_id).first()
    if provider is None or not provider.is_active:
        raise HTTPException(status_code=401, detail="Provider not found")
    return provider
